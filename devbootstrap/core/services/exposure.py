"""
Exposure Manager — make installed tools reachable for every login shell.

Two mechanisms:
  - symlinks in the global binary directory (``/usr/local/bin``)
  - one profile snippet per tool family in ``/etc/profile.d``, fully
    regenerated on every run (PATH prepends plus init hooks)

Writes happen only when something differs, so a second run over an
already exposed host leaves every file untouched. Nothing here fails
a tool: problems come back as warnings and mark PATH as degraded.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from devbootstrap.adapters.shell.filesystem import HostFilesystem
from devbootstrap.core.models.host import HostLayout

logger = logging.getLogger(__name__)

SNIPPET_PREFIX = "devbootstrap-"
SNIPPET_MODE = 0o644

_HEADER = "# Managed by devbootstrap; regenerated on every run, local edits are overwritten."


@dataclass(frozen=True)
class ProfileSnippet:
    """Init snippet for one tool family."""

    family: str
    path_entries: tuple[str, ...] = ()
    hooks: tuple[str, ...] = ()

    def render(self) -> str:
        """Deterministic snippet text: same input, same bytes.

        ``path_entries[0]`` ends up first on PATH. Entries already on
        PATH are not added twice when the snippet is sourced again.
        """
        lines = [_HEADER, f"# family: {self.family}", ""]
        for entry in reversed(self.path_entries):
            lines += [
                'case ":${PATH}:" in',
                f'  *":{entry}:"*) ;;',
                f'  *) PATH="{entry}:${{PATH}}" ;;',
                "esac",
            ]
        if self.path_entries:
            lines += ["export PATH", ""]
        for hook in self.hooks:
            lines += [hook.rstrip("\n"), ""]
        return "\n".join(lines).rstrip("\n") + "\n"


@dataclass
class ExposureOutcome:
    """What an exposure pass did (or could not do)."""

    links: dict[str, str] = field(default_factory=dict)     # link path -> action
    snippets: dict[str, str] = field(default_factory=dict)  # snippet path -> written|unchanged
    warnings: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    def merge(self, other: ExposureOutcome) -> None:
        self.links.update(other.links)
        self.snippets.update(other.snippets)
        self.warnings.extend(other.warnings)

    def to_dict(self) -> dict:
        return {
            "links": self.links,
            "snippets": self.snippets,
            "warnings": self.warnings,
            "degraded": self.degraded,
        }


def snippet_path(layout: HostLayout, family: str) -> Path:
    return layout.profile_path / f"{SNIPPET_PREFIX}{family}.sh"


def ensure_symlink(link: Path, target: Path, fs: HostFilesystem) -> str:
    """Point ``link`` at ``target``.

    Returns:
        ``created``, ``replaced`` (stale or broken link) or ``unchanged``.

    Raises:
        FileExistsError: ``link`` is a real file or directory; it is
            never overwritten.
        OSError: The link could not be written.
    """
    if link.is_symlink():
        if Path(os.readlink(link)) == target:
            return "unchanged"
        fs.symlink(link, target)
        return "replaced"
    if link.exists():
        raise FileExistsError(f"{link} exists and is not a symlink; left as is")
    fs.symlink(link, target)
    return "created"


def write_snippet(path: Path, content: str, fs: HostFilesystem) -> bool:
    """Write a snippet unless it already has exactly this content.

    Returns:
        True if the file was (or in dry-run, would be) written.
    """
    try:
        if path.is_file() and path.read_text(encoding="utf-8") == content:
            return False
    except OSError:
        pass
    fs.write_text(path, content, mode=SNIPPET_MODE)
    return True


def expose(
    links: Iterable[tuple[Path, Path]],
    snippet: ProfileSnippet | None,
    *,
    layout: HostLayout,
    fs: HostFilesystem,
    privileged: bool,
) -> ExposureOutcome:
    """Expose one tool: global symlinks plus its family snippet.

    Args:
        links: ``(binary, link_name)`` pairs; each link is created in
            the global binary directory.
        snippet: The tool family's snippet, or None if it needs none.
        layout: Host layout (global bin and profile directories).
        fs: Filesystem adapter.
        privileged: Global locations are only writable by root.
    """
    outcome = ExposureOutcome()
    pairs = list(links)

    if not privileged:
        if pairs or snippet is not None:
            msg = (
                f"global exposure needs root; {layout.bin_path} and "
                f"{layout.profile_path} were not updated"
            )
            logger.warning(msg)
            outcome.warnings.append(msg)
        return outcome

    for binary, name in pairs:
        link = layout.bin_path / name
        if not binary.exists() and not fs.dry_run:
            msg = f"cannot link {link}: {binary} does not exist"
            logger.warning(msg)
            outcome.warnings.append(msg)
            continue
        try:
            action = ensure_symlink(link, binary, fs)
        except OSError as e:
            msg = f"cannot link {link} -> {binary}: {e}"
            logger.warning(msg)
            outcome.warnings.append(msg)
            continue
        outcome.links[str(link)] = action
        if action != "unchanged":
            logger.info("Linked %s -> %s (%s)", link, binary, action)

    if snippet is not None:
        outcome.merge(_write_snippets([snippet], layout=layout, fs=fs))

    return outcome


def refresh_snippets(
    snippets: Iterable[ProfileSnippet],
    *,
    layout: HostLayout,
    fs: HostFilesystem,
    privileged: bool,
) -> ExposureOutcome:
    """Regenerate the snippets for every tool family now present.

    Snippets of families that are no longer present are left alone.
    """
    items = list(snippets)
    outcome = ExposureOutcome()
    if not items:
        return outcome
    if not privileged:
        msg = f"global PATH refresh needs root; {layout.profile_path} was not updated"
        logger.warning(msg)
        outcome.warnings.append(msg)
        return outcome
    outcome.merge(_write_snippets(items, layout=layout, fs=fs))
    return outcome


def _write_snippets(
    snippets: list[ProfileSnippet],
    *,
    layout: HostLayout,
    fs: HostFilesystem,
) -> ExposureOutcome:
    outcome = ExposureOutcome()
    for snippet in snippets:
        path = snippet_path(layout, snippet.family)
        try:
            written = write_snippet(path, snippet.render(), fs)
        except OSError as e:
            msg = f"cannot write {path}: {e}; other users will not see {snippet.family} on PATH"
            logger.warning(msg)
            outcome.warnings.append(msg)
            continue
        outcome.snippets[str(path)] = "written" if written else "unchanged"
        if written:
            logger.info("Wrote profile snippet %s", path)
    return outcome
