"""chdfs-doctor: check the bootstrap of an ``ofs://`` mount step by step.

Examples:
    # Check address, configuration and cache directory
    chdfs-doctor ofs://f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com/ --config ofs.yaml

    # Override a key and go all the way to a connected filesystem
    chdfs-doctor ofs://f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com/ \\
        --config ofs.yaml --set fs.ofs.tmp.cache.dir=/tmp/chdfs --connect

Exit codes:
    0 - All checks passed
    1 - A bootstrap check failed
    2 - The config file or a --set argument could not be read
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from chdfs.adapter import connect
from chdfs.address import extract_mount_point_addr, is_valid_mount_point_addr
from chdfs.backend.registry import get_backend_factory, list_backends
from chdfs.cache_dir import provision_cache_dir
from chdfs.config.keys import BACKEND_IMPL_KEY, DEFAULT_BACKEND_IMPL
from chdfs.config.resolver import resolve_bootstrap_config
from chdfs.config.source import Configuration
from chdfs.exceptions import ChdfsError
from chdfs.logging_config import setup_logging


def _load_configuration(config_path: Optional[str], overrides: List[str]) -> Configuration:
    conf = Configuration.from_yaml(config_path) if config_path else Configuration()
    for item in overrides:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"--set expects KEY=VALUE, got {item!r}")
        conf.set(key.strip(), value.strip())
    return conf


def run_checks(uri: str, conf: Configuration, do_connect: bool = False) -> bool:
    """Run each bootstrap step, printing one line per step. Returns True if all pass."""
    print(f"== {uri}")

    address = extract_mount_point_addr(uri)
    if not is_valid_mount_point_addr(address):
        print(f"  FAIL address: {address!r} is not a valid mount point address")
        return False
    print(f"  ok   address: {address}")

    try:
        bootstrap = resolve_bootstrap_config(conf)
    except ChdfsError as exc:
        print(f"  FAIL config: {exc}")
        for extra in getattr(exc, "additional_errors", ()):
            print(f"  FAIL config: {extra}")
        return False
    print(
        f"  ok   config: appid={bootstrap.account_id} port={bootstrap.server_port} "
        f"tls={bootstrap.use_transport_security}"
    )

    try:
        handle = provision_cache_dir(bootstrap.cache_dir_path)
    except ChdfsError as exc:
        print(f"  FAIL cache dir: {exc}")
        return False
    print(f"  ok   cache dir: {handle.path}{' (created)' if handle.created else ''}")

    backend_name = conf.get_str(BACKEND_IMPL_KEY, DEFAULT_BACKEND_IMPL)
    try:
        get_backend_factory(backend_name)
    except ChdfsError as exc:
        print(f"  FAIL backend: {exc}")
        return False
    print(f"  ok   backend: {backend_name} (registered: {', '.join(list_backends())})")

    if do_connect:
        try:
            with connect(uri, conf) as fs:
                entries = fs.list_status("/")
                print(f"  ok   connect: {fs.get_uri()} ({len(entries)} entries under /)")
        except (ChdfsError, OSError) as exc:
            print(f"  FAIL connect: {exc}")
            return False
    return True


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="chdfs doctor: check the bootstrap of an ofs:// mount point"
    )
    parser.add_argument("uri", help="ofs://<mount point address>/ or the bare address")
    parser.add_argument("--config", "-c", help="YAML file with fs.ofs.* settings")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a configuration key (repeatable)",
    )
    parser.add_argument(
        "--connect", action="store_true", help="Also initialize the filesystem and list /"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for bootstrap diagnostics (default WARNING)",
    )
    args = parser.parse_args(argv)

    setup_logging(level=getattr(logging, args.log_level), format_type="simple")

    try:
        conf = _load_configuration(args.config, args.overrides)
    except (ChdfsError, ValueError) as exc:
        print(f"! {args.config or args.uri}: {exc}")
        return 2

    return 0 if run_checks(args.uri, conf, do_connect=args.connect) else 1


if __name__ == "__main__":
    raise SystemExit(main())
