# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import json
import logging
import os
import sys
from typing import Optional

from .keystore import KeyStore, KEYSTORE_DIR
from .request_builder import RequestBuilder
from ..blockchain.core.account import recover_signer
from ..blockchain.core.contracts import encode_call
from ..blockchain.core.host import HostState
from ..blockchain.storage.db import StorageDB
from ..protocol.config.params import get_network
from ..protocol.types.request import PackedRequest

logger = logging.getLogger(__name__)


def get_network_name(args) -> str:
    return args.network or os.environ.get("ACCTKIT_NETWORK", "devnet")


def _load_request(path: str) -> PackedRequest:
    with open(path, "r") as f:
        return PackedRequest.model_validate_json(f.read())


# --- Keys Commands ---
def cmd_keys_add(args):
    ks = KeyStore(args.keystore)
    try:
        key = ks.create_key(args.name)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print(f"Key '{args.name}' created.")
    print(f"Address: {key['address']}")
    print(f"Pubkey:  {key['public_key']}")
    print("Important: Private key saved unencrypted. Do not share!")


def cmd_keys_import(args):
    ks = KeyStore(args.keystore)
    try:
        key = ks.import_key(args.name, args.private_key)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print(f"Key '{args.name}' imported.")
    print(f"Address: {key['address']}")


def cmd_keys_list(args):
    keys = KeyStore(args.keystore).list_keys()
    if not keys:
        print("No keys found.")
        return

    print(f"{'Name':<15} {'Address':<45}")
    print("-" * 60)
    for k in keys:
        print(f"{k['name']:<15} {k['address']:<45}")


# --- Request Commands ---
def _resolve_nonce(args) -> Optional[int]:
    if args.nonce is not None:
        return args.nonce
    if not args.state_db:
        print("Error: --nonce or --state-db required")
        sys.exit(1)
    db = StorageDB(args.state_db)
    try:
        return HostState.load(db).nonce_holder.get_min_nonce(args.sender)
    finally:
        db.close()


def _call_data(args) -> bytes:
    if args.method:
        call_args = [json.loads(a) for a in (args.arg or [])]
        return encode_call(args.method, *call_args)
    return bytes.fromhex(args.data[2:] if args.data.startswith("0x") else args.data)


def cmd_request_build(args):
    network = get_network(get_network_name(args))
    signer_key = KeyStore(args.keystore).private_key_hex(args.key) if args.key else None
    builder = RequestBuilder(network=network, signer_key=signer_key)

    try:
        request = builder.build_unsigned(
            sender=args.sender,
            destination=args.to,
            call_data=_call_data(args),
            nonce=_resolve_nonce(args),
            value=args.value,
            verification_gas_limit=args.verification_gas_limit,
            call_gas_limit=args.call_gas_limit,
            max_priority_fee_per_gas=args.max_priority_fee,
            max_fee_per_gas=args.max_fee,
        )
        if not args.unsigned:
            request = builder.sign(request)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    body = request.model_dump_json(indent=2)
    if args.out:
        with open(args.out, "w") as f:
            f.write(body)
        print(f"Request {request.hash()} written to {args.out}")
    else:
        print(body)


def cmd_request_hash(args):
    request = _load_request(args.file)
    print(json.dumps({
        "hash": request.hash(),
        "account_gas_limits": hex(request.account_gas_limits),
        "gas_fees": hex(request.gas_fees),
    }, indent=2))


def cmd_request_recover(args):
    request = _load_request(args.file)
    network = get_network(get_network_name(args))
    signer = recover_signer(request, network.bech32_prefix)
    if signer is None:
        print("Error: signature could not be recovered")
        sys.exit(1)
    print(signer)


def main():
    parser = argparse.ArgumentParser(description="acctkit smart-account tooling")
    parser.add_argument("--network", help="Network id or chain id (default: $ACCTKIT_NETWORK or devnet)")
    parser.add_argument("--keystore", default=KEYSTORE_DIR, help="Key store directory")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Keys
    keys_parser = subparsers.add_parser("keys", help="Manage owner keys")
    keys_sub = keys_parser.add_subparsers(dest="subcommand")

    add_p = keys_sub.add_parser("add", help="Create new key")
    add_p.add_argument("name")
    add_p.set_defaults(func=cmd_keys_add)

    import_p = keys_sub.add_parser("import", help="Import private key")
    import_p.add_argument("name")
    import_p.add_argument("--private-key", required=True)
    import_p.set_defaults(func=cmd_keys_import)

    list_p = keys_sub.add_parser("list", help="List keys")
    list_p.set_defaults(func=cmd_keys_list)

    # Requests
    req_parser = subparsers.add_parser("request", help="Build and inspect signed requests")
    req_sub = req_parser.add_subparsers(dest="subcommand")

    build_p = req_sub.add_parser("build", help="Build (and sign) a request")
    build_p.add_argument("--sender", required=True, help="Smart account address")
    build_p.add_argument("--to", required=True, help="Destination address")
    build_p.add_argument("--data", default="", help="Raw call data (hex)")
    build_p.add_argument("--method", help="Contract method (overrides --data)")
    build_p.add_argument("--arg", action="append", help="JSON-encoded method argument (repeatable)")
    build_p.add_argument("--value", type=int, default=0)
    build_p.add_argument("--nonce", type=int, help="Explicit nonce")
    build_p.add_argument("--state-db", help="Persisted host state to read the current nonce from")
    build_p.add_argument("--verification-gas-limit", type=int)
    build_p.add_argument("--call-gas-limit", type=int)
    build_p.add_argument("--max-priority-fee", type=int)
    build_p.add_argument("--max-fee", type=int)
    build_p.add_argument("--key", help="Key store name of the signer")
    build_p.add_argument("--unsigned", action="store_true")
    build_p.add_argument("--out", help="Write JSON to file")
    build_p.set_defaults(func=cmd_request_build)

    hash_p = req_sub.add_parser("hash", help="Print canonical hash and packed fields")
    hash_p.add_argument("file")
    hash_p.set_defaults(func=cmd_request_hash)

    recover_p = req_sub.add_parser("recover", help="Print the signer address")
    recover_p.add_argument("file")
    recover_p.set_defaults(func=cmd_request_recover)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
