from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from .descriptor import dump_manifests, load_descriptor
from .errors import ConfigError, DescriptorError
from .health import check_http, check_tcp, wait_for_port
from .server import EXIT_CONFIG_ERROR, serve
from .settings import load_settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _cmd_serve(args: argparse.Namespace) -> int:
    try:
        settings = load_settings()
    except ConfigError as e:
        _print({"ok": False, "error": str(e)})
        return EXIT_CONFIG_ERROR
    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.descriptor is not None:
        overrides["descriptor_path"] = args.descriptor
    return serve(dataclasses.replace(settings, **overrides))


def _cmd_validate(args: argparse.Namespace) -> int:
    try:
        descriptor = load_descriptor(args.file)
    except DescriptorError as e:
        _print({"ok": False, "file": args.file, "problems": e.problems})
        return 1
    _print({"ok": True, "file": args.file, "descriptor": descriptor.to_dict()})
    return 0


def _cmd_render(args: argparse.Namespace) -> int:
    try:
        descriptor = load_descriptor(args.file)
    except DescriptorError as e:
        _print({"ok": False, "file": args.file, "problems": e.problems})
        return 1
    text = dump_manifests(descriptor)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text)
    return 0


def _cmd_probe(args: argparse.Namespace) -> int:
    result: dict = {"host": args.host, "port": args.port}
    if args.wait > 0:
        result["waited"] = wait_for_port(args.host, args.port, timeout_s=args.wait)
    ok, msg, latency = check_tcp(args.host, args.port, timeout_s=args.timeout)
    result["tcp"] = {"ok": ok, "message": msg, "latency_ms": latency}
    if ok and args.url:
        http_ok, http_msg, http_latency = check_http(args.url, timeout_s=args.timeout)
        result["http"] = {"ok": http_ok, "message": http_msg, "latency_ms": http_latency, "url": args.url}
        ok = http_ok
    result["ok"] = ok
    _print(result)
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="helloci", description="Hello World service and deployment descriptor tools")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_serve = sub.add_parser("serve", help="Run the service (PORT/HOST from the environment)")
    s_serve.add_argument("--host", default=None, help="Bind address (overrides HOST)")
    s_serve.add_argument("--port", type=int, default=None, help="Listen port (overrides PORT)")
    s_serve.add_argument("--descriptor", default=None, help="Descriptor whose containerPort must match the port")

    s_val = sub.add_parser("validate", help="Validate a deployment descriptor")
    s_val.add_argument("file")

    s_ren = sub.add_parser("render", help="Render a descriptor into Kubernetes manifests")
    s_ren.add_argument("file")
    s_ren.add_argument("-o", "--output", default=None, help="Write YAML here instead of stdout")

    s_probe = sub.add_parser("probe", help="Check that a running instance answers")
    s_probe.add_argument("--host", default="127.0.0.1")
    s_probe.add_argument("--port", type=int, default=3000)
    s_probe.add_argument("--url", default=None, help="Also GET this URL and expect 'Hello World'")
    s_probe.add_argument("--timeout", type=float, default=2.0)
    s_probe.add_argument("--wait", type=float, default=0.0, help="Seconds to wait for the port to open")

    args = p.parse_args(argv)

    if args.cmd == "serve":
        return _cmd_serve(args)
    if args.cmd == "validate":
        return _cmd_validate(args)
    if args.cmd == "render":
        return _cmd_render(args)
    if args.cmd == "probe":
        return _cmd_probe(args)

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
