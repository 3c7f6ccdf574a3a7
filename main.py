"""
hwsigner Usage Examples

Signs transactions against the in-memory SoftwareSigningDevice so the
examples run without hardware attached.
"""

import asyncio
import logging

from hwsigner import (
    Network,
    SoftwareSigningDevice,
    TransactionBuilder,
    Utxo,
    ValidationRequiredError,
    build_transaction,
)
from hwsigner.types import DerivationPath

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")
RECEIVE_PATH = DerivationPath.parse("m/44'/0'/0'/0/0")
CHANGE_PATH = DerivationPath.parse("m/44'/0'/0'/1/0")
DESTINATION = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"


def wallet_utxo(device: SoftwareSigningDevice, value: int, vout: int = 0) -> Utxo:
    """A made-up UTXO paying to the device's first receive address."""
    return Utxo.create(
        txid="ab" * 32,
        vout=vout,
        value=value,
        path=RECEIVE_PATH,
        public_key=device.public_key(RECEIVE_PATH),
        script_pubkey=device.output_script(RECEIVE_PATH),
    )


async def simple_payment_example():
    """Example 1: Pay one address, send the rest back as change."""
    print("\n=== Simple Payment Example ===")

    device = SoftwareSigningDevice(SEED)
    print(f"Receive address: {device.address(RECEIVE_PATH)}")

    builder = (
        build_transaction(device)
        .spend(wallet_utxo(device, 100_000))
        .to(DESTINATION, 50_000)
        .fees(1_000)
        .change(CHANGE_PATH, device.address(CHANGE_PATH))
    )
    tx = await builder.sign()

    print(f"Change: {builder.change_value} sats")
    print(f"TXID: {tx.txid}")
    print(f"Size: {tx.size} bytes")
    print(f"Raw: {tx.hex}")


async def second_factor_example():
    """Example 2: Answer the device's second factor request and resume."""
    print("\n=== Second Factor Example ===")

    device = SoftwareSigningDevice(SEED, second_factor=b"1234")
    builder = (
        TransactionBuilder(device)
        .spend(wallet_utxo(device, 60_000, vout=0), wallet_utxo(device, 40_000, vout=1))
        .to(DESTINATION, 75_000)
        .fees(2_000)
        .change(CHANGE_PATH, device.address(CHANGE_PATH))
    )

    try:
        tx = await builder.sign()
    except ValidationRequiredError as e:
        print(f"Device asks for validation: {e.request.hex}")
        # On real hardware the user reads the challenge on the device screen
        tx = await builder.complete_second_factor("1234").sign()

    print(f"Signed {tx.input_count} inputs, TXID: {tx.txid}")


async def step_by_step_example():
    """Example 3: Drive the pipeline one phase at a time with progress."""
    print("\n=== Step By Step Example ===")

    device = SoftwareSigningDevice(SEED, network=Network.TESTNET)
    builder = (
        TransactionBuilder(device, network=Network.TESTNET)
        .spend(wallet_utxo(device, 25_000))
        .to(device.address(DerivationPath.parse("m/44'/1'/0'/0/7")), 20_000)
        .fees(500)
        .change(CHANGE_PATH, device.address(CHANGE_PATH))
        .on_progress(lambda step, total: print(f"   progress {step}/{total}"))
    )

    tx = None
    while tx is None:
        print(f"Phase: {builder.current_phase.name}")
        tx = await builder.step()
    await asyncio.sleep(0)

    print(f"Testnet TXID: {tx.txid}")


async def main():
    """Run all examples."""
    examples = [
        simple_payment_example,
        second_factor_example,
        step_by_step_example,
    ]

    for example in examples:
        await example()
        await asyncio.sleep(0.1)


if __name__ == "__main__":
    asyncio.run(main())
