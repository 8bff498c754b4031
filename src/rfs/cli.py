from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from .bench import run_benchmark
from .client import RfsClient
from .config import ServerConfig
from .constants import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_ROOT, LOCK_GLOBAL, LOCK_PER_PATH
from .errors import IncompleteTransfer, RemoteError, RfsError
from .protocol import Permission
from .server import FileServer


class _Parser(argparse.ArgumentParser):
    # usage errors exit 1 like every other failure
    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _client(args: argparse.Namespace) -> RfsClient:
    return RfsClient(args.host, args.port)


def cmd_write(args: argparse.Namespace) -> int:
    perm = Permission.from_token(args.permission)
    try:
        metrics = _client(args).write(args.local, args.remote, perm)
    except RemoteError as exc:
        print(f"Server says: {exc.reply}")
        return 1
    print("Server says: OK")
    logging.info("sent %d bytes in %.3fs", metrics.bytes_transferred, metrics.duration_s)
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    try:
        metrics = _client(args).get(args.remote, args.local)
    except RemoteError:
        print("Server says: File not found or can't open it.", file=sys.stderr)
        return 1
    except IncompleteTransfer as exc:
        print(f"File didn't fully arrive ({exc}). Partial data only.", file=sys.stderr)
        return 1
    print(f"Got the file: {args.local}")
    logging.info("received %d bytes in %.3fs", metrics.bytes_transferred, metrics.duration_s)
    return 0


def cmd_rm(args: argparse.Namespace) -> int:
    try:
        _client(args).remove(args.remote)
    except RemoteError:
        print("Server says: Couldn't remove it.")
        return 1
    print("Server deleted the file/folder for us.")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    config = ServerConfig(
        root=args.root,
        host=args.listen_host,
        port=args.listen_port,
        lock_mode=args.lock_mode,
        max_workers=args.max_workers,
    )
    server = FileServer(config)
    server.bind()
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logging.info("interrupted")
    return 0


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        clients=args.clients,
        size_bytes=args.size_bytes,
        lock_mode=args.lock_mode,
        max_workers=args.max_workers,
    )
    payload = {"role": "bench", **asdict(r)}
    print(json.dumps(payload, indent=2) if args.json else payload)
    return 0 if r.mismatches == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(prog="rfs", description="Remote file store: WRITE, GET and RM files on an rfs server.")
    p.add_argument("--host", default=DEFAULT_HOST)
    p.add_argument("--port", type=int, default=DEFAULT_PORT)
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_server_opts(x: argparse.ArgumentParser) -> None:
        x.add_argument("--lock-mode", choices=[LOCK_GLOBAL, LOCK_PER_PATH], default=LOCK_GLOBAL)
        x.add_argument("--max-workers", type=int, default=None, help="bound concurrent connections (default: unbounded)")

    write = sub.add_parser("WRITE", help="upload a local file")
    write.add_argument("local")
    write.add_argument("remote")
    write.add_argument("permission", nargs="?", default="W", help="R for read-only, W (default) for writable")
    write.set_defaults(func=cmd_write)

    get = sub.add_parser("GET", help="download a remote file")
    get.add_argument("remote")
    get.add_argument("local")
    get.set_defaults(func=cmd_get)

    rm = sub.add_parser("RM", help="remove a remote file")
    rm.add_argument("remote")
    rm.set_defaults(func=cmd_rm)

    serve = sub.add_parser("serve", help="run the server")
    add_server_opts(serve)
    serve.add_argument("--root", default=DEFAULT_ROOT)
    serve.add_argument("--listen-host", default=DEFAULT_HOST)
    serve.add_argument("--listen-port", type=int, default=DEFAULT_PORT)
    serve.set_defaults(func=cmd_serve)

    bench = sub.add_parser("bench", help="loopback benchmark with concurrent clients")
    add_server_opts(bench)
    bench.add_argument("--clients", type=int, default=4)
    bench.add_argument("--size-bytes", type=int, default=1_000_000)
    bench.add_argument("--json", action="store_true")
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        return int(args.func(args))
    except (OSError, RfsError, ValueError) as exc:
        print(f"rfs: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
