#!/usr/bin/env python3
"""
cli.py
Command-line interface for dockvol.
Parses arguments, loads config, sets up logging, and invokes the orchestrator.
"""
from __future__ import annotations
import argparse, sys
from .bundle import DEFAULT_CONFIG_PATH, SYSTEM_CONFIG_PATH
from .config import find_config, load_config
from .errors import DockvolError, ConfigError, ResolutionError, EngineError
from .orchestrator import volume_list, volume_inspect, volume_rm, volume_export, volume_import
from .util import setup_logging
from . import __version__


def err(msg: str, hint: str | None = None) -> None:
    print(f"❌ Error: {msg}", file=sys.stderr)
    if hint:
        print(f"💡 Hint: {hint}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="dockvol",
        description="dockvol: the missing volume manager for Docker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument(
        "--config",
        default=None,
        help=f"path to dockvol.toml (default: {DEFAULT_CONFIG_PATH} then {SYSTEM_CONFIG_PATH})",
    )
    ap.add_argument("-H", "--host", default=None, help="docker socket or URL (env: DOCKER_HOST)")
    ap.add_argument("--tls", action="store_true", default=None, help="enable TLS (env: DOCKER_TLS)")
    ap.add_argument("--tlsverify", action="store_true", default=None, help="verify the server certificate (env: DOCKER_TLS_VERIFY)")
    ap.add_argument("--tlscacert", default=None, help="CA certificate (default: $DOCKER_CERT_PATH/ca.pem)")
    ap.add_argument("--tlscert", default=None, help="client certificate (default: $DOCKER_CERT_PATH/cert.pem)")
    ap.add_argument("--tlskey", default=None, help="client key (default: $DOCKER_CERT_PATH/key.pem)")
    ap.add_argument("--docker-root", default=None, help="docker root path on the engine host (default: /var/lib/docker)")
    ap.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")

    sub = ap.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    p = sub.add_parser("list", aliases=["ls"], help="list all volumes")
    p.add_argument("-q", "--quiet", action="store_true", help="display only IDs")

    p = sub.add_parser("inspect", help="get details of a volume")
    p.add_argument("volume")

    p = sub.add_parser("rm", help="delete one or more unused volumes")
    p.add_argument("volumes", nargs="+")

    p = sub.add_parser("export", help="export a volume as a tarball to stdout")
    p.add_argument("-p", "--pause", action="store_true", default=None,
                   help="pause any container using the volume during export")
    p.add_argument("volume")

    p = sub.add_parser("import", help="import a tarball from stdin into a container's volume")
    p.add_argument("container")
    p.add_argument("path", nargs="?", default=None, help="mount path inside the container (default: the exported one)")
    return ap


def apply_overrides(cfg, args) -> None:
    """CLI flags beat config file and environment."""
    if args.host:
        cfg.host = args.host
    if args.tls:
        cfg.tls = True
    if args.tlsverify:
        cfg.tls_verify = True
    if args.tlscacert:
        cfg.tls_ca_cert = args.tlscacert
    if args.tlscert:
        cfg.tls_cert = args.tlscert
    if args.tlskey:
        cfg.tls_key = args.tlskey
    if args.docker_root:
        cfg.docker_root = args.docker_root
    if args.log_level:
        cfg.log_level = args.log_level
    if getattr(args, "pause", None):
        cfg.pause = True


def validate_arguments(args) -> None:
    if args.command == "import" and args.path and not args.path.startswith("/"):
        err(f"mount path must be absolute, got {args.path}", "Try something like /var/lib/mysql")
        sys.exit(1)
    if args.command == "import" and sys.stdin.isatty():
        err("import reads the archive from stdin", "dockvol import <container> < volume.tar")
        sys.exit(1)
    if args.command == "export" and sys.stdout.isatty():
        err("refusing to write a tar archive to a terminal", "dockvol export <volume> > volume.tar")
        sys.exit(1)


def dispatch(cfg, args) -> int:
    if args.command in ("list", "ls"):
        return volume_list(cfg, quiet=args.quiet)
    if args.command == "inspect":
        return volume_inspect(cfg, args.volume)
    if args.command == "rm":
        return volume_rm(cfg, args.volumes)
    if args.command == "export":
        return volume_export(cfg, args.volume, pause=cfg.pause)
    if args.command == "import":
        return volume_import(cfg, args.container, args.path)
    raise AssertionError(args.command)


def main(argv=None) -> int:
    try:
        args = build_parser().parse_args(argv)
        validate_arguments(args)

        try:
            cfg_path = find_config(args.config)
            cfg = load_config(cfg_path)
        except FileNotFoundError as e:
            err(str(e), "Check the path passed to --config")
            return 1
        except ConfigError as e:
            err(str(e), "Check TOML syntax of the configuration file")
            return 1

        apply_overrides(cfg, args)
        setup_logging(cfg.log_level)
        return dispatch(cfg, args)

    except KeyboardInterrupt:
        print("\n\n⚡ Interrupted by user.", file=sys.stderr)
        return 130
    except ResolutionError as e:
        err(str(e))
        return 1
    except EngineError as e:
        err(str(e), "Is the docker daemon running and reachable (-H / DOCKER_HOST)?")
        return 1
    except DockvolError as e:
        err(str(e))
        return 1
    except Exception as e:
        err(f"Unexpected error: {e}", "Re-run with --log-level DEBUG for details")
        return 1


if __name__ == "__main__":
    sys.exit(main())
