from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .adapters.packer import PakBuildPacker
from .adapters.vcs import GitVersionControl
from .bootstrap import discover_root
from .errors import BuildError, ConfigError
from .packaging.build_config import BuildConfig
from .packaging.orchestrator import BuildKind, BuildOrchestrator
from .packaging.snapshot_token import TokenStore

COMMANDS = {"build", "status", "reset-token"}


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--root", type=str, default=None, help="Repository root (default: parent of the Tools directory)")
    p.add_argument("--config", type=str, default=None, help="Config JSON file (default: <root>/livepack.json if present)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> tuple[argparse.ArgumentParser, argparse.ArgumentParser]:
    parser = argparse.ArgumentParser(prog="livepack", description="Incrementally rebuild packed art archives")
    sub = parser.add_subparsers(dest="cmd")

    p_build = sub.add_parser("build", help="Full or patch build, whichever is needed")
    _add_common(p_build)
    p_build.add_argument("--gui", action="store_true", help="Show a progress dialog")

    p_status = sub.add_parser("status", help="Show what a build would do, without building")
    _add_common(p_status)
    p_status.add_argument("--list", action="store_true", help="List every changed file")

    p_reset = sub.add_parser("reset-token", help="Forget the snapshot token so the next build is a full one")
    _add_common(p_reset)
    return parser, p_build


def load_config(root: Optional[str], config: Optional[str]) -> BuildConfig:
    root_dir = Path(root).resolve() if root else discover_root()
    if config:
        cfg = BuildConfig.load(Path(config), root_dir)
    else:
        cfg = BuildConfig.load_from_directory(root_dir)
    cfg.validate_layout()
    return cfg


def make_orchestrator(cfg: BuildConfig) -> BuildOrchestrator:
    vcs = GitVersionControl(cfg.root_dir, executable=cfg.git_executable)
    packer = PakBuildPacker(cfg.tools_path, executable=cfg.packer_executable, extra_args=cfg.packer_extra_args)
    return BuildOrchestrator(cfg, vcs, packer)


def main(argv: List[str] | None = None) -> int:
    parser, p_build = build_parser()

    # Back-compat: no subcommand means build
    argv_list = list(argv) if argv is not None else sys.argv[1:]
    if not argv_list or argv_list[0] not in COMMANDS:
        args = p_build.parse_args(argv_list)
        args.cmd = "build"  # type: ignore[attr-defined]
    else:
        args = parser.parse_args(argv_list)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = load_config(args.root, args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 2

    if args.cmd == "reset-token":
        removed = TokenStore(cfg.token_path).clear()
        print("Snapshot token removed; next build is a full build." if removed else "No snapshot token to remove.")
        return 0

    orchestrator = make_orchestrator(cfg)

    if args.cmd == "status":
        return _cmd_status(orchestrator, show_all=bool(args.list))

    return _cmd_build(orchestrator, gui=bool(args.gui))


def _cmd_status(orchestrator: BuildOrchestrator, show_all: bool) -> int:
    try:
        plan = orchestrator.plan()
    except BuildError as e:
        print(f"Status failed: {e}")
        return 1
    print(f"HEAD: {plan.head_revision}")
    if plan.token is not None:
        print(f"Token: {plan.token.revision} ({len(plan.token.modified_paths)} carried path(s))")
    else:
        print("Token: none")
    print(f"Next build: {plan.kind.value} ({plan.reason})")
    if plan.changed:
        shown = plan.changed if show_all else plan.changed[:20]
        for ap in shown:
            print(f"  {ap}")
        if len(shown) < len(plan.changed):
            print(f"  ... and {len(plan.changed) - len(shown)} more (use --list)")
    return 0


def _cmd_build(orchestrator: BuildOrchestrator, gui: bool) -> int:
    try:
        if gui:
            from .ui.app import run_with_progress  # local import keeps Qt optional at runtime
            result = run_with_progress(orchestrator)
        else:
            orchestrator.set_progress_callback(lambda pct, msg: print(f"[{pct:3d}%] {msg}"))
            result = orchestrator.run()
    except BuildError as e:
        print(f"Build failed: {e}")
        return 1
    except OSError as e:
        print(f"Build failed: filesystem error: {e}")
        return 1

    if result.kind is BuildKind.NONE:
        print("Archives are up to date.")
    else:
        names = ", ".join(p.name for p in result.archives) or "none"
        print(f"{result.kind.value} build complete: {result.staged_files} file(s) packed; archives: {names}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
