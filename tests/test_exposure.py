"""
Tests for the exposure manager — symlinks and profile snippets.
"""

import os
from pathlib import Path

import pytest

from devbootstrap.adapters.shell.filesystem import HostFilesystem
from devbootstrap.core.models.host import HostLayout
from devbootstrap.core.services.exposure import (
    ProfileSnippet,
    ensure_symlink,
    expose,
    refresh_snippets,
    snippet_path,
    write_snippet,
)

from conftest import make_executable


# ── Snippet Rendering Tests ──────────────────────────────────────────


class TestProfileSnippet:
    def test_render_is_deterministic(self):
        snippet = ProfileSnippet(family="uv", path_entries=("/opt/uv/bin",))
        assert snippet.render() == snippet.render()
        assert snippet.render().endswith("\n")

    def test_path_prepend_is_guarded(self):
        text = ProfileSnippet(family="uv", path_entries=("/opt/uv/bin",)).render()
        assert 'case ":${PATH}:" in' in text
        assert '*":/opt/uv/bin:"*) ;;' in text
        assert 'PATH="/opt/uv/bin:${PATH}"' in text
        assert "export PATH" in text

    def test_first_entry_ends_up_first(self):
        text = ProfileSnippet(family="x", path_entries=("/first", "/second")).render()
        # Prepends apply in order, so the first entry is prepended last
        assert text.index('PATH="/second:') < text.index('PATH="/first:')

    def test_hooks_are_included(self):
        text = ProfileSnippet(family="pyenv", hooks=('eval "$(pyenv init -)"',)).render()
        assert 'eval "$(pyenv init -)"' in text
        assert "export PATH" not in text

    def test_header_marks_file_as_managed(self):
        text = ProfileSnippet(family="poetry", path_entries=("/opt/pypoetry/bin",)).render()
        assert text.startswith("# Managed by devbootstrap")
        assert "# family: poetry" in text


# ── Symlink Tests ────────────────────────────────────────────────────


class TestEnsureSymlink:
    def test_created(self, tmp_path: Path):
        target = make_executable(tmp_path / "opt" / "uv")
        link = tmp_path / "bin" / "uv"
        assert ensure_symlink(link, target, HostFilesystem()) == "created"
        assert os.readlink(link) == str(target)

    def test_correct_link_is_left_alone(self, tmp_path: Path):
        target = make_executable(tmp_path / "opt" / "uv")
        link = tmp_path / "bin" / "uv"
        link.parent.mkdir()
        link.symlink_to(target)
        before = os.lstat(link).st_ino

        assert ensure_symlink(link, target, HostFilesystem()) == "unchanged"
        assert os.lstat(link).st_ino == before

    def test_stale_link_is_replaced(self, tmp_path: Path):
        old = make_executable(tmp_path / "old" / "uv")
        new = make_executable(tmp_path / "new" / "uv")
        link = tmp_path / "bin" / "uv"
        link.parent.mkdir()
        link.symlink_to(old)

        assert ensure_symlink(link, new, HostFilesystem()) == "replaced"
        assert os.readlink(link) == str(new)

    def test_broken_link_is_replaced(self, tmp_path: Path):
        target = make_executable(tmp_path / "opt" / "uv")
        link = tmp_path / "bin" / "uv"
        link.parent.mkdir()
        link.symlink_to(tmp_path / "gone")

        assert ensure_symlink(link, target, HostFilesystem()) == "replaced"

    def test_regular_file_is_never_clobbered(self, tmp_path: Path):
        target = make_executable(tmp_path / "opt" / "uv")
        link = make_executable(tmp_path / "bin" / "uv")

        with pytest.raises(FileExistsError):
            ensure_symlink(link, target, HostFilesystem())
        assert not link.is_symlink()


# ── Snippet Writing Tests ────────────────────────────────────────────


class TestWriteSnippet:
    def test_writes_once(self, tmp_path: Path):
        path = tmp_path / "profile.d" / "devbootstrap-uv.sh"
        fs = HostFilesystem()
        assert write_snippet(path, "content\n", fs) is True
        inode = os.stat(path).st_ino
        assert write_snippet(path, "content\n", fs) is False
        assert os.stat(path).st_ino == inode
        assert oct(os.stat(path).st_mode & 0o777) == oct(0o644)

    def test_rewrites_on_change(self, tmp_path: Path):
        path = tmp_path / "devbootstrap-uv.sh"
        path.write_text("# hand edited\n")
        assert write_snippet(path, "content\n", HostFilesystem()) is True
        assert path.read_text() == "content\n"

    def test_dry_run_does_not_write(self, tmp_path: Path):
        path = tmp_path / "devbootstrap-uv.sh"
        fs = HostFilesystem(dry_run=True)
        assert write_snippet(path, "content\n", fs) is True
        assert not path.exists()
        assert fs.planned


# ── Expose / Refresh Tests ───────────────────────────────────────────


class TestExpose:
    def test_links_and_snippet(self, layout: HostLayout):
        binary = make_executable(layout.opt_path / "uv" / "bin" / "uv")
        snippet = ProfileSnippet(family="uv", path_entries=(str(binary.parent),))

        outcome = expose(
            [(binary, Path("uv"))], snippet, layout=layout, fs=HostFilesystem(), privileged=True
        )

        assert not outcome.degraded
        assert (layout.bin_path / "uv").resolve() == binary.resolve()
        assert snippet_path(layout, "uv").read_text() == snippet.render()

    def test_missing_binary_is_a_warning(self, layout: HostLayout):
        outcome = expose(
            [(layout.opt_path / "uv" / "bin" / "uvx", Path("uvx"))],
            None,
            layout=layout,
            fs=HostFilesystem(),
            privileged=True,
        )
        assert outcome.degraded
        assert not (layout.bin_path / "uvx").exists()

    def test_unprivileged_touches_nothing(self, layout: HostLayout, host_root: Path):
        binary = make_executable(layout.opt_path / "uv" / "bin" / "uv")
        outcome = expose(
            [(binary, Path("uv"))],
            ProfileSnippet(family="uv", path_entries=("/x",)),
            layout=layout,
            fs=HostFilesystem(),
            privileged=False,
        )
        assert outcome.degraded
        assert "root" in outcome.warnings[0]
        assert not layout.bin_path.exists()
        assert not layout.profile_path.exists()

    def test_conflicting_file_is_a_warning(self, layout: HostLayout):
        binary = make_executable(layout.opt_path / "uv" / "bin" / "uv")
        make_executable(layout.bin_path / "uv")
        outcome = expose(
            [(binary, Path("uv"))], None, layout=layout, fs=HostFilesystem(), privileged=True
        )
        assert outcome.degraded
        assert not (layout.bin_path / "uv").is_symlink()

    def test_unwritable_profile_dir_degrades(self, layout: HostLayout):
        layout.profile_path.parent.mkdir(parents=True)
        layout.profile_path.write_text("not a directory")

        outcome = refresh_snippets(
            [ProfileSnippet(family="uv", path_entries=("/opt/uv/bin",))],
            layout=layout,
            fs=HostFilesystem(),
            privileged=True,
        )

        assert outcome.degraded
        assert "uv" in outcome.warnings[0]

    def test_refresh_is_byte_stable(self, layout: HostLayout):
        snippets = [
            ProfileSnippet(family="uv", path_entries=("/opt/uv/bin",)),
            ProfileSnippet(family="poetry", path_entries=("/opt/pypoetry/bin",)),
        ]
        first = refresh_snippets(snippets, layout=layout, fs=HostFilesystem(), privileged=True)
        second = refresh_snippets(snippets, layout=layout, fs=HostFilesystem(), privileged=True)

        assert set(first.snippets.values()) == {"written"}
        assert set(second.snippets.values()) == {"unchanged"}
