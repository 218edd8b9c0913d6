#!/usr/bin/env -S uv run --script

# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "click",
#     "colorama",
# ]
# ///

import os
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import click
from colorama import Fore, init

# Initialize colorama
init(autoreset=True)

__version__ = "0.1.0"


class SourceUnavailable(click.ClickException):
    """The source directory (or an explicit file) cannot be listed."""


class RenameError(Exception):
    """A single rename could not be carried out."""


class RenameCollision(RenameError):
    pass


class RenameIOFailure(RenameError):
    pass


@dataclass(frozen=True)
class PathEntry:
    path: Path
    is_dir: bool = False

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Configuration:
    prefix: str | None = None
    source_directory: Path = Path(".")
    files: tuple[Path, ...] = field(default_factory=tuple)
    include_directories: bool = False
    yes: bool = False
    replacement: str = ""
    dry_run: bool = False


@dataclass(frozen=True)
class RenamePlan:
    entry: PathEntry
    new_name: str

    @property
    def target(self) -> Path:
        return self.entry.path.parent / self.new_name


def printable(text) -> str:
    """Make a file name safe to echo, even if it isn't valid UTF-8 on disk."""
    return os.fsencode(str(text)).decode("utf-8", "replace")


def common_prefix(strings: Iterable[str]) -> str:
    """Return the longest string that every item starts with.

    An empty input has no common prefix; a single item is its own prefix.
    """
    strings = list(strings)
    if not strings:
        return ""

    shortest = min(strings, key=len)
    for i, char in enumerate(shortest):
        if any(s[i] != char for s in strings):
            return shortest[:i]
    return shortest


def resolve_prefix(config: Configuration, entries: list[PathEntry]) -> str:
    """Use the explicit prefix if there is one, otherwise the names' common prefix."""
    if config.prefix is not None:
        return config.prefix
    return common_prefix(entry.name for entry in entries)


def list_entries(source_directory: Path, include_directories: bool = False) -> Iterator[PathEntry]:
    """Yield the immediate children of source_directory that are rename candidates.

    Only regular files are yielded unless include_directories is set. Raises
    SourceUnavailable when the directory is missing or cannot be read.
    """
    directory = Path(source_directory)
    if not directory.is_dir():
        raise SourceUnavailable(f"{printable(directory)} is not a valid directory")

    try:
        children = sorted(directory.iterdir())
    except OSError as e:
        raise SourceUnavailable(f"Couldn't open directory {printable(directory)}: {printable(e)}") from e

    for child in children:
        try:
            is_dir = child.is_dir()
            is_file = child.is_file()
        except OSError as e:
            click.echo(f"{Fore.RED}Error getting file type of {printable(child.name)}: {printable(e)}", err=True)
            continue

        if is_file or (include_directories and is_dir):
            yield PathEntry(child, is_dir=is_dir)


def entries_from_files(files: Iterable[Path], include_directories: bool = False) -> Iterator[PathEntry]:
    """Turn explicitly given paths into candidates, mirroring list_entries' filtering."""
    for path in files:
        path = Path(path)
        if not path.exists():
            raise SourceUnavailable(f"{printable(path)} does not exist")
        is_dir = path.is_dir()
        if is_dir and not include_directories:
            click.echo(f"{Fore.YELLOW}Skipping directory {printable(path)} (use -d to include directories)")
            continue
        yield PathEntry(path, is_dir=is_dir)


def strip_name(name: str, prefix: str, replacement: str = "") -> str | None:
    """Swap prefix for replacement at the start of name, or None if name doesn't start with it."""
    if not name.startswith(prefix):
        return None
    return replacement + name[len(prefix):]


def plan_renames(
    entries: Iterable[PathEntry], prefix: str, replacement: str = ""
) -> tuple[list[RenamePlan], list[tuple[PathEntry, str]]]:
    """Work out the new name of every entry.

    Returns the planned renames and the skipped entries with the reason
    each one was left alone.
    """
    plans = []
    skipped = []
    for entry in entries:
        new_name = strip_name(entry.name, prefix, replacement)
        if new_name is None:
            skipped.append((entry, f"does not start with '{printable(prefix)}'"))
        elif entry.name == prefix:
            skipped.append((entry, "nothing would be left of the name"))
        elif new_name == entry.name:
            skipped.append((entry, "name is unchanged"))
        else:
            plans.append(RenamePlan(entry, new_name))
    return plans, skipped


def apply_rename(plan: RenamePlan) -> Path:
    """Rename a single entry, refusing to overwrite anything.

    The existence check and the rename are two separate calls, so a target
    created in between is still overwritten on POSIX.
    """
    target = plan.target
    # lexists so dangling symlinks count as taken too
    if os.path.lexists(target):
        raise RenameCollision(f"{target.name} already exists")
    try:
        return plan.entry.path.rename(target)
    except OSError as e:
        raise RenameIOFailure(str(e)) from e


def show_plan(plans: list[RenamePlan], dry_run: bool = False) -> None:
    for plan in plans:
        suffix = "/" if plan.entry.is_dir else ""
        if dry_run:
            click.echo(f"Would rename: {printable(plan.entry.name)}{suffix} → {printable(plan.new_name)}{suffix}")
        else:
            click.echo(f"  {printable(plan.entry.name)}{suffix} → {printable(plan.new_name)}{suffix}")


def confirm_renames() -> bool:
    """Ask before touching the filesystem. Only an explicit yes counts."""
    try:
        answer = click.prompt("Apply these renames? [y/N]", default="", show_default=False)
    except click.Abort:
        # EOF or Ctrl-C at the prompt
        click.echo()
        return False
    return answer.strip().lower() in ("y", "yes")


def run(config: Configuration) -> int:
    """List, plan, confirm and rename. Returns the process exit code."""
    if config.files:
        entries = list(entries_from_files(config.files, config.include_directories))
    else:
        entries = list(list_entries(config.source_directory, config.include_directories))

    if not entries:
        where = "given files" if config.files else printable(config.source_directory)
        click.echo(f"{Fore.YELLOW}No candidates found in {where}")
        return 0

    prefix = resolve_prefix(config, entries)
    if not prefix:
        click.echo(f"{Fore.YELLOW}No common prefix found among {len(entries)} entries")
        return 0

    click.echo(f"{Fore.CYAN}Prefix: '{printable(prefix)}'")

    plans, skipped = plan_renames(entries, prefix, config.replacement)
    for entry, reason in skipped:
        click.echo(f"{Fore.YELLOW}Skipping {printable(entry.name)}: {reason}")

    if not plans:
        click.echo(f"{Fore.YELLOW}Nothing to rename.")
        return 0

    if config.dry_run:
        show_plan(plans, dry_run=True)
        click.echo(f"\nDry run complete. {len(plans)} entries would be renamed.")
        return 0

    if not config.yes:
        click.echo("Proposed renames:")
        show_plan(plans)
        if not confirm_renames():
            click.echo(f"{Fore.YELLOW}Aborted. No files were renamed.")
            return 0

    renamed = 0
    failed = 0
    for plan in plans:
        try:
            apply_rename(plan)
        except RenameError as e:
            click.echo(f"{Fore.RED}Error renaming {printable(plan.entry.name)}: {printable(e)}", err=True)
            failed += 1
            continue
        click.echo(f"{Fore.GREEN}Renamed: {printable(plan.entry.name)} → {printable(plan.new_name)}")
        renamed += 1

    click.echo(f"\nRenamed {renamed} entries" + (f", {failed} failed." if failed else "."))
    return 1 if failed else 0


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument("files", nargs=-1, type=click.Path(path_type=Path))
@click.option("--prefix", "-p", default=None, help="Prefix to strip (default: longest common prefix of the names)")
@click.option(
    "--source-directory",
    "-s",
    type=click.Path(path_type=Path),
    default=None,
    help="Directory whose entries are renamed (default: current directory)",
)
@click.option("--include-directories", "-d", is_flag=True, help="Also rename directories")
@click.option("--yes", "-y", is_flag=True, help="Rename without asking for confirmation")
@click.option("--replacement", "-r", default="", help="Text put where the prefix was (default: nothing)")
@click.option("--dry-run", "-n", is_flag=True, help="Preview changes without actually renaming anything")
@click.version_option(__version__)
def strip_prefix(
    files: tuple[Path, ...],
    prefix: str | None,
    source_directory: Path | None,
    include_directories: bool,
    yes: bool,
    replacement: str,
    dry_run: bool,
) -> None:
    """
    Strip (or replace) the common prefix from the names of files in a directory.

    Explicit FILES can be given after -- instead of listing a directory.

    Examples:
        ./strip_prefix.py                      # Strip the longest common prefix in .
        ./strip_prefix.py -p IMG_ -r photo_    # Replace 'IMG_' with 'photo_'
        ./strip_prefix.py -y -- a_1.txt a_2.txt
    """
    if files and source_directory is not None:
        raise click.UsageError("Cannot combine --source-directory with explicit files")
    if prefix == "":
        raise click.UsageError("--prefix must not be empty")
    if os.sep in replacement or (os.altsep and os.altsep in replacement):
        raise click.UsageError("--replacement must not contain a path separator")

    config = Configuration(
        prefix=prefix,
        source_directory=source_directory if source_directory is not None else Path("."),
        files=tuple(files),
        include_directories=include_directories,
        yes=yes,
        replacement=replacement,
        dry_run=dry_run,
    )
    sys.exit(run(config))


if __name__ == "__main__":
    strip_prefix()
