"""Install the document-rendering binaries (pandoc, quarto) into a user prefix.

Each tool is a linux-amd64 release tarball unpacked under ``~/opt`` with its
executable symlinked into ``~/bin``.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from torchvision.datasets.utils import download_and_extract_archive


@dataclass(frozen=True)
class ToolRelease:
    name: str
    version: str
    url: str
    binary: str

    @property
    def install_dir(self) -> str:
        return f"{self.name}-{self.version}"


TOOLS: Dict[str, ToolRelease] = {
    "pandoc": ToolRelease(
        name="pandoc",
        version="3.1.9",
        url="https://github.com/jgm/pandoc/releases/download/3.1.9/pandoc-3.1.9-linux-amd64.tar.gz",
        binary="bin/pandoc",
    ),
    "quarto": ToolRelease(
        name="quarto",
        version="1.4.547",
        url="https://github.com/quarto-dev/quarto-cli/releases/download/v1.4.547/quarto-1.4.547-linux-amd64.tar.gz",
        binary="bin/quarto",
    ),
}


def install_tool(name: str, opt_dir: str | Path = "~/opt", bin_dir: str | Path = "~/bin") -> Path:
    """Download, unpack and link a tool; returns the symlink path."""
    release = TOOLS[name]
    opt_dir = Path(opt_dir).expanduser()
    bin_dir = Path(bin_dir).expanduser()
    opt_dir.mkdir(parents=True, exist_ok=True)
    bin_dir.mkdir(parents=True, exist_ok=True)

    target = opt_dir / release.install_dir / release.binary
    if not target.exists():
        download_and_extract_archive(release.url, download_root=str(opt_dir), remove_finished=True)
        if not target.exists():
            raise FileNotFoundError(f"{release.url} did not unpack {target}")

    link = bin_dir / release.name
    if link.is_symlink():
        link.unlink()
    elif link.exists():
        raise FileExistsError(f"{link} exists and is not a symlink; refusing to replace it")
    link.symlink_to(target)
    return link


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Install pandoc or quarto into a user prefix.")
    parser.add_argument("tool", choices=sorted(TOOLS), help="Tool to install.")
    parser.add_argument("--opt-dir", type=str, default="~/opt", help="Where release archives are unpacked.")
    parser.add_argument("--bin-dir", type=str, default="~/bin", help="Where the executable is linked.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    link = install_tool(args.tool, opt_dir=args.opt_dir, bin_dir=args.bin_dir)
    print(f"Linked {link} -> {link.resolve()}")


if __name__ == "__main__":
    main()
