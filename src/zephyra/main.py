"""Command-line entry point.

Usage:
    zephyra dashboard [--address ADDR]
    zephyra market [--stats]
    zephyra nfts [--address ADDR]
    zephyra raffle [--enter]
    zephyra deposit WETH 0.5 [--mint 100]
    zephyra mint 100
    zephyra burn 50
    zephyra redeem WETH 0.1
    zephyra liquidate 0xTarget WETH 25
    zephyra bridge baseSepolia 0xReceiver 10 [--quote-only]
    zephyra config

Writes use the local wallet from ZEPHYRA_PRIVATE_KEY or ZEPHYRA_MNEMONIC
and ask for confirmation before each signature unless --yes is given.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from pydantic import BaseModel

from zephyra.client import ZephyraClient
from zephyra.config import Settings, get_settings
from zephyra.errors import PartialReadFailure, ZephyraError
from zephyra.models.base import ServiceResult
from zephyra.wallet.provider import LocalWalletProvider

logger = logging.getLogger(__name__)

WRITE_COMMANDS = {"deposit", "mint", "burn", "redeem", "liquidate", "bridge"}


def configure_logging(settings: Settings) -> None:
    log_level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def prompt_confirm(request: dict) -> bool:
    """Terminal stand-in for the wallet's confirmation dialog."""
    if "method" in request:
        question = f"Allow connection ({request['method']})?"
    else:
        question = (
            f"Sign transaction to {request.get('to')} "
            f"(value {request.get('value', 0)} wei)?"
        )
    answer = input(f"{question} [y/N] ").strip().lower()
    return answer in ("y", "yes")


def emit(result: BaseModel) -> int:
    print(result.model_dump_json(indent=2))
    if isinstance(result, ServiceResult) and not result.success:
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zephyra", description="Zephyra protocol client")
    parser.add_argument("--yes", "-y", action="store_true", help="Sign without prompting")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("dashboard", help="Position of a wallet")
    p.add_argument("--address", help="Wallet to inspect (default: connected wallet)")

    p = sub.add_parser("market", help="All protocol participants")
    p.add_argument("--stats", action="store_true", help="Show protocol totals instead")

    p = sub.add_parser("nfts", help="Zephyra NFTs owned by a wallet")
    p.add_argument("--address", help="Wallet to inspect (default: connected wallet)")

    p = sub.add_parser("raffle", help="Raffle status")
    p.add_argument("--enter", action="store_true", help="Enter the raffle")

    p = sub.add_parser("deposit", help="Deposit collateral")
    p.add_argument("symbol")
    p.add_argument("amount")
    p.add_argument("--mint", metavar="ZUSD", help="Also mint this much ZUSD")

    p = sub.add_parser("mint", help="Mint ZUSD")
    p.add_argument("amount")

    p = sub.add_parser("burn", help="Burn ZUSD to repay debt")
    p.add_argument("amount")

    p = sub.add_parser("redeem", help="Withdraw collateral")
    p.add_argument("symbol")
    p.add_argument("amount")

    p = sub.add_parser("liquidate", help="Liquidate an under-collateralized position")
    p.add_argument("target")
    p.add_argument("symbol", help="Collateral to claim")
    p.add_argument("amount", help="ZUSD debt to cover")

    p = sub.add_parser("bridge", help="Send ZUSD to another chain")
    p.add_argument("destination", help="Lane key (baseSepolia, fuji) or chain selector")
    p.add_argument("receiver")
    p.add_argument("amount")
    p.add_argument("--quote-only", action="store_true", help="Only show the fee")

    sub.add_parser("config", help="Show effective configuration (secrets redacted)")
    return parser


async def _address(client: ZephyraClient, explicit: Optional[str]) -> Optional[str]:
    if explicit:
        return explicit
    result = await client.session_manager.connect()
    if not result.success:
        emit(result)
        return None
    return result.session.address


async def _bridge(client: ZephyraClient, args: argparse.Namespace) -> int:
    quoted = await client.crosschain.quote(args.destination, args.receiver, args.amount)
    if args.quote_only or not quoted.success:
        return emit(quoted)
    quote = quoted.quote
    print(f"CCIP fee: {quote.fee_display} (native) for {quote.amount} ZUSD to {quote.destination.name}")
    return emit(await client.crosschain.submit(quote, quote.fee))


async def dispatch(client: ZephyraClient, args: argparse.Namespace) -> int:
    command = args.command

    if command in WRITE_COMMANDS or getattr(args, "enter", False):
        connected = await client.session_manager.connect()
        if not connected.success:
            return emit(connected)

    if command == "dashboard":
        address = await _address(client, args.address)
        if address is None:
            return 1
        return emit(await client.dashboard.fetch_snapshot(address))

    if command == "market":
        if args.stats:
            return emit(await client.market.protocol_stats())
        return emit(await client.market.list_participants())

    if command == "nfts":
        address = await _address(client, args.address)
        if address is None:
            return 1
        return emit(await client.nfts.discover(address))

    if command == "raffle":
        if args.enter:
            return emit(await client.raffle.try_luck())
        return emit(await client.raffle.status())

    orchestrator = client.orchestrator
    if command == "deposit":
        if args.mint:
            return emit(await orchestrator.deposit_and_mint(args.symbol, args.amount, args.mint))
        return emit(await orchestrator.deposit(args.symbol, args.amount))
    if command == "mint":
        return emit(await orchestrator.mint(args.amount))
    if command == "burn":
        return emit(await orchestrator.burn(args.amount))
    if command == "redeem":
        return emit(await orchestrator.redeem(args.symbol, args.amount))
    if command == "liquidate":
        return emit(await client.market.liquidate(args.target, args.symbol, args.amount))
    if command == "bridge":
        return await _bridge(client, args)

    raise ValueError(f"Unknown command: {command}")


async def run(args: argparse.Namespace, settings: Settings) -> int:
    provider = None
    if settings.has_wallet:
        confirm = None if args.yes else prompt_confirm
        provider = LocalWalletProvider.from_settings(settings, confirm=confirm)
    elif args.command in WRITE_COMMANDS:
        logger.error("No wallet configured: set ZEPHYRA_PRIVATE_KEY or ZEPHYRA_MNEMONIC")

    client = ZephyraClient(provider, settings)
    try:
        await client.start()
    except ZephyraError as e:
        logger.error(f"Client start failed: {e}")
        return emit(ServiceResult(**ServiceResult.error_fields(e)))
    except Exception as e:
        logger.error(f"Client start failed: {e}")
        failure = PartialReadFailure(f"Could not load asset catalog: {e}")
        return emit(ServiceResult(**ServiceResult.error_fields(failure)))

    try:
        return await dispatch(client, args)
    finally:
        await client.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "config":
        print(json.dumps(settings.get_safe_dict(), indent=2))
        return 0

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
