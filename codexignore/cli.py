from pathlib import Path
import argparse, json, logging, sys

from .config import settings
from .errors import CodexIgnoreError
from .matcher import CodexIgnore
from .utils.logging import configure_logging, walk_context
from .walker import build_manifest, iter_files

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="codexignore", description="Filter project paths through a .codexignore file.")
    p.add_argument("--ignore-file", default=settings.ignore_file_name, help="ignore file name inside ROOT")
    p.add_argument("--log-level", default=settings.log_level)
    sub = p.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="report which of the given paths are ignored")
    check.add_argument("root"); check.add_argument("paths", nargs="+", help="paths relative to ROOT, or absolute")
    check.add_argument("--dir", action="store_true", help="treat every path as a directory")
    check.add_argument("-v", "--verbose", action="store_true", help="show the deciding rule for each path")

    ls = sub.add_parser("ls", help="list files kept under ROOT")
    ls.add_argument("root")
    ls.add_argument("--dirs", action="store_true", help="list kept directories as well")

    manifest = sub.add_parser("manifest", help="write a BLAKE3 manifest of kept files")
    manifest.add_argument("root")
    manifest.add_argument("--output", help="write JSON here instead of stdout")
    manifest.add_argument("--workers", type=int, default=settings.manifest_workers)
    return p


def _check(ignore: CodexIgnore | None, args) -> int:
    if ignore is None:
        return 1
    matched = False
    for raw in args.paths:
        rule = ignore.explain(raw, is_dir=args.dir)
        if rule is None:
            continue
        ignored = not rule.negated
        matched = matched or ignored
        if args.verbose:
            print(f"{rule.line_number}:{rule.pattern}\t{raw}")
        elif ignored:
            print(raw)
    return 0 if matched else 1


def _ls(root: Path, ignore: CodexIgnore | None, args) -> int:
    for path in iter_files(root, ignore, include_dirs=args.dirs):
        rel = path.relative_to(root).as_posix()
        print(rel + "/" if path.is_dir() and not path.is_symlink() else rel)
    return 0


def _manifest(root: Path, ignore: CodexIgnore | None, args) -> int:
    data = json.dumps(build_manifest(root, ignore, workers=args.workers), ensure_ascii=False, indent=2, sort_keys=True)
    if args.output:
        Path(args.output).write_text(data + "\n", encoding="utf-8")
    else:
        print(data)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    root = Path(args.root).resolve()
    try:
        ignore = CodexIgnore.load_from_root(root, file_name=args.ignore_file)
    except CodexIgnoreError as e:
        print(f"codexignore: {e}", file=sys.stderr)
        return 2
    if ignore is None:
        logger.info("no ignore file found; nothing is filtered", extra={"root": str(root)})

    with walk_context():
        if args.command == "check":
            return _check(ignore, args)
        if args.command == "ls":
            return _ls(root, ignore, args)
        return _manifest(root, ignore, args)


if __name__ == "__main__":
    raise SystemExit(main())
