#!/usr/bin/env python3
"""
avail-submit: submit a blob to an Avail node and wait until it is in a block.

Examples:
    avail-submit --hex 0xab1234
    avail-submit --endpoint wss://turing-rpc.avail.so/ws --app-id 463 --data "hello avail"
    avail-submit --seed //Bob --finalized --timeout 300 --data "hello"
"""
import argparse
import logging
import sys

from substrateinterface.exceptions import SubstrateRequestException

from .config import load_keypair, load_settings, parse_timeout
from .connection import ChainConnection
from .exceptions import AvailSubmitError
from .submit import submit_data


def parse_payload(args) -> bytes:
    if args.hex is not None:
        h = args.hex[2:] if args.hex.startswith("0x") else args.hex
        return bytes.fromhex(h)
    return args.data.encode("utf-8")


def build_parser(settings) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Submit data to Avail and wait for block inclusion.")
    ap.add_argument("--endpoint", default=settings.endpoint, help=f"Node websocket endpoint (default: {settings.endpoint})")
    ap.add_argument("--seed", default=settings.seed, help="Signer seed URI (e.g. //Alice) or mnemonic")
    ap.add_argument("--app-id", type=int, default=settings.app_id, help=f"Application id (default: {settings.app_id})")
    payload = ap.add_mutually_exclusive_group(required=True)
    payload.add_argument("--data", help="UTF-8 text to submit")
    payload.add_argument("--hex", help="Hex bytes to submit, e.g. 0xab1234")
    ap.add_argument("--timeout", type=parse_timeout, default=settings.inclusion_timeout,
                    help="Seconds to wait for inclusion, 0 waits forever (default: %(default)s)")
    ap.add_argument("--finalized", action="store_true", default=settings.wait_for_finalization,
                    help="Wait for finalization instead of inclusion")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv=None) -> int:
    settings = load_settings()
    args = build_parser(settings).parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        data = parse_payload(args)
    except ValueError as e:
        print(f"Invalid --hex payload: {e}", file=sys.stderr)
        return 2

    keypair = load_keypair(args.seed, settings.ss58_format)
    print("Account:", keypair.ss58_address)

    try:
        connection = ChainConnection.connect(args.endpoint, ss58_format=settings.ss58_format)
    except OSError as e:
        print(f"Failed to connect to {args.endpoint}: {e}", file=sys.stderr)
        return 1

    with connection:
        try:
            tx_id = submit_data(
                connection, keypair, args.app_id, data,
                timeout=args.timeout,
                wait_for_finalization=args.finalized,
            )
        except (AvailSubmitError, SubstrateRequestException) as e:
            print(f"Submission failed: {e}", file=sys.stderr)
            return 1

    print("Included in block:", tx_id.block)
    print("Extrinsic index  :", tx_id.index)
    print("TxId             :", tx_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
