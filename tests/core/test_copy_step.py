"""Tests for the two-phase copy step."""

import grp
import os
import pwd
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from undoable_copy.core.context import StepContext
from undoable_copy.core.copy_step import CopyStep, cp
from undoable_copy.schemas import CopyRequest, Phase, UndoAction

requires_root_tools = pytest.mark.skipif(
    os.geteuid() != 0
    or shutil.which("rsync") is None
    or shutil.which("chown") is None,
    reason="needs root with rsync and chown installed",
)


def _request(source: Path | str | None, target: Path | str | None, **kw) -> CopyRequest:
    return CopyRequest(
        source=str(source) if source is not None else None,
        target=str(target) if target is not None else None,
        **kw,
    )


class TestValidation:
    """Requests missing required fields or naming an unknown phase."""

    @pytest.mark.parametrize("phase", ["check", "fix"])
    def test_missing_source(self, make_ctx: Callable[..., StepContext], phase: str) -> None:
        result = CopyStep(make_ctx()).run(_request(None, "/tmp/t", phase=phase))

        assert result.status == 400
        assert result.message == "Please specify source"

    def test_empty_target(self, make_ctx: Callable[..., StepContext]) -> None:
        result = CopyStep(make_ctx()).run(_request("/tmp/s", "", phase="check"))

        assert result.status == 400
        assert result.message == "Please specify target"

    def test_invalid_phase(self, make_ctx: Callable[..., StepContext]) -> None:
        result = CopyStep(make_ctx()).run(_request("/tmp/s", "/tmp/t", phase="undo"))

        assert result.status == 400
        assert "Invalid phase" in result.message
        assert result.undo_actions == []


class TestCheck:
    """Phase check: existence-only state inspection."""

    @pytest.mark.parametrize("target_exists", [True, False])
    @pytest.mark.parametrize(
        "flags",
        [{}, {"is_recovery": True}, {"is_rollback": True}, {"dry_run": True}],
    )
    def test_missing_source_is_unfixable(
        self,
        tmp_path: Path,
        make_ctx: Callable[..., StepContext],
        target_exists: bool,
        flags: dict[str, bool],
    ) -> None:
        target = tmp_path / "t"
        if target_exists:
            target.mkdir()

        result = CopyStep(make_ctx()).run(
            _request(tmp_path / "missing", target, phase="check", **flags)
        )

        assert result.status == 412
        assert "does not exist" in result.message
        assert result.undo_actions == []

    def test_copy_needed_declares_trash_undo(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext]
    ) -> None:
        target = tmp_path / "t"

        result = CopyStep(make_ctx()).check(_request(source_tree, target))

        assert result.status == 200
        assert result.message == f"{source_tree} needs to be copied to {target}"
        assert result.undo_actions == [UndoAction.trash(str(target))]
        assert result.undo_actions[0].action == "trash"
        assert result.undo_actions[0].args == {"path": str(target)}

    def test_existing_target_is_noop(
        self,
        source_tree: Path,
        tmp_path: Path,
        make_ctx: Callable[..., StepContext],
        fake_tools,
    ) -> None:
        target = tmp_path / "t"
        target.mkdir()

        result = CopyStep(make_ctx()).check(_request(source_tree, target))

        assert result.status == 304
        assert result.is_noop
        assert result.ok
        assert result.undo_actions == []
        assert fake_tools.sync_calls == []

    @pytest.mark.parametrize("flag", ["is_recovery", "is_rollback"])
    def test_existing_target_tolerated_when_replaying(
        self,
        source_tree: Path,
        tmp_path: Path,
        make_ctx: Callable[..., StepContext],
        flag: str,
    ) -> None:
        target = tmp_path / "t"
        target.mkdir()

        result = CopyStep(make_ctx()).check(_request(source_tree, target, **{flag: True}))

        assert result.status == 200
        assert "needs to be synced" in result.message
        assert result.undo_actions == [UndoAction.trash(str(target))]

    def test_dangling_symlink_counts_as_existing(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext]
    ) -> None:
        target = tmp_path / "t"
        os.symlink(tmp_path / "nowhere", target)

        result = CopyStep(make_ctx()).check(_request(source_tree, target))

        assert result.status == 304

    def test_check_does_not_touch_filesystem(
        self,
        source_tree: Path,
        tmp_path: Path,
        make_ctx: Callable[..., StepContext],
        fake_tools,
    ) -> None:
        target = tmp_path / "t"

        CopyStep(make_ctx(superuser=True)).check(
            _request(source_tree, target, target_owner="root")
        )

        assert not target.exists()
        assert fake_tools.sync_calls == []
        assert fake_tools.chown_calls == []

    def test_dry_run_logs_pending_copy(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext]
    ) -> None:
        target = tmp_path / "t"

        with capture_logs() as logs:
            result = CopyStep(make_ctx()).check(_request(source_tree, target, dry_run=True))

        assert result.status == 200
        dry = [e for e in logs if e["event"].startswith("(DRY)")]
        assert len(dry) == 1
        assert dry[0]["log_level"] == "info"
        assert f"Copying {source_tree} -> {target}" in dry[0]["event"]
        assert not target.exists()

    def test_dry_run_recovery_logs_syncing(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext]
    ) -> None:
        target = tmp_path / "t"
        target.mkdir()

        with capture_logs() as logs:
            CopyStep(make_ctx()).check(
                _request(source_tree, target, dry_run=True, is_recovery=True)
            )

        assert any(e["event"].startswith("(DRY) Syncing") for e in logs)

    def test_dry_run_noop_matches_plain_noop(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext]
    ) -> None:
        target = tmp_path / "t"
        target.mkdir()
        (target / "keep").write_text("untouched")
        step = CopyStep(make_ctx())

        plain = step.check(_request(source_tree, target))
        with capture_logs() as logs:
            dry = step.check(_request(source_tree, target, dry_run=True))

        assert dry.status == plain.status == 304
        assert any(e["event"].startswith("(DRY)") for e in logs)
        assert sorted(p.name for p in target.iterdir()) == ["keep"]


class TestFix:
    """Phase fix: delegated rsync and optional chown."""

    def test_copies_contents_into_target(
        self,
        source_tree: Path,
        tmp_path: Path,
        make_ctx: Callable[..., StepContext],
        fake_tools,
        contents,
    ) -> None:
        target = tmp_path / "t"

        result = CopyStep(make_ctx()).fix(_request(source_tree, target, phase="fix"))

        assert result.status == 200
        assert result.message == "OK"
        assert fake_tools.sync_calls == [(str(source_tree), str(target), ["-a"])]
        assert contents(target) == contents(source_tree)

    def test_passes_sync_options_in_order(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
    ) -> None:
        opts = ["-a", "--delete", "-H"]

        CopyStep(make_ctx()).fix(
            _request(source_tree, tmp_path / "t", phase="fix", sync_options=opts)
        )

        assert fake_tools.sync_calls[0][2] == opts

    def test_fix_twice_resumes_partial_target(
        self,
        source_tree: Path,
        tmp_path: Path,
        make_ctx: Callable[..., StepContext],
        fake_tools,
        contents,
    ) -> None:
        target = tmp_path / "t"
        target.mkdir()
        (target / "f1").write_text("f")  # truncated by an interrupted transfer
        step = CopyStep(make_ctx())
        request = _request(source_tree, target, phase="fix", is_recovery=True)

        first = step.run(request)
        second = step.run(request)

        assert first.status == second.status == 200
        assert contents(target) == contents(source_tree)
        assert len(fake_tools.sync_calls) == 2

    def test_rsync_failure_reports_diagnostics(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
    ) -> None:
        fake_tools.sync_returncode = 23
        fake_tools.sync_stderr = "rsync error: some files could not be transferred"

        result = CopyStep(make_ctx(superuser=True)).fix(
            _request(source_tree, tmp_path / "t", phase="fix", target_owner="ana")
        )

        assert result.status == 500
        assert result.message.startswith("Can't rsync: exited with code 23")
        assert "some files could not be transferred" in result.message
        assert fake_tools.chown_calls == []

    def test_chown_as_superuser(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
    ) -> None:
        target = tmp_path / "t"

        result = CopyStep(make_ctx(superuser=True)).fix(
            _request(
                source_tree, target, phase="fix", target_owner="ana", target_group="staff"
            )
        )

        assert result.status == 200
        assert fake_tools.chown_calls == [(str(target), "ana", "staff")]

    def test_chown_with_group_only(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
    ) -> None:
        target = tmp_path / "t"

        CopyStep(make_ctx(superuser=True)).fix(
            _request(source_tree, target, phase="fix", target_group="staff")
        )

        assert fake_tools.chown_calls == [(str(target), None, "staff")]

    def test_chown_skipped_without_privilege(
        self,
        source_tree: Path,
        tmp_path: Path,
        make_ctx: Callable[..., StepContext],
        fake_tools,
        contents,
    ) -> None:
        target = tmp_path / "t"

        with capture_logs() as logs:
            result = CopyStep(make_ctx(superuser=False)).fix(
                _request(source_tree, target, phase="fix", target_owner="ana")
            )

        assert result.status == 200
        assert fake_tools.chown_calls == []
        assert contents(target) == contents(source_tree)
        skipped = [e for e in logs if "not doing chown" in e["event"]]
        assert skipped and skipped[0]["log_level"] == "debug"

    def test_no_chown_when_not_requested(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
    ) -> None:
        CopyStep(make_ctx(superuser=True)).fix(
            _request(source_tree, tmp_path / "t", phase="fix")
        )

        assert fake_tools.chown_calls == []

    def test_chown_failure(
        self, source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
    ) -> None:
        fake_tools.chown_returncode = 1
        fake_tools.chown_stderr = "chown: invalid user: 'nobody-here'"

        result = CopyStep(make_ctx(superuser=True)).fix(
            _request(source_tree, tmp_path / "t", phase="fix", target_owner="nobody-here")
        )

        assert result.status == 500
        assert result.message.startswith("Can't chown: exited with code 1")
        assert "invalid user" in result.message

    def test_fix_does_not_recheck_existence(
        self, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
    ) -> None:
        fake_tools.sync_returncode = 23
        fake_tools.sync_stderr = "change_dir failed"

        result = CopyStep(make_ctx()).fix(
            _request(tmp_path / "missing", tmp_path / "t", phase=Phase.FIX)
        )

        assert result.status == 500
        assert len(fake_tools.sync_calls) == 1


@requires_root_tools
class TestRealChown:
    """Ownership applied by the real chown after a real rsync."""

    def _nobody(self) -> pwd.struct_passwd:
        try:
            return pwd.getpwnam("nobody")
        except KeyError:
            pytest.skip("no 'nobody' user on this system")

    def test_owner_and_group_applied_recursively(
        self, source_tree: Path, tmp_path: Path
    ) -> None:
        nobody = self._nobody()
        group = grp.getgrgid(nobody.pw_gid).gr_name
        target = tmp_path / "t"

        result = CopyStep(StepContext()).run(
            _request(
                source_tree,
                target,
                phase="fix",
                target_owner="nobody",
                target_group=group,
            )
        )

        assert result.status == 200
        for path in (target, target / "f1", target / "sub", target / "sub" / "f2"):
            st = os.lstat(path)
            assert (st.st_uid, st.st_gid) == (nobody.pw_uid, nobody.pw_gid)

    def test_group_only_keeps_owner(self, source_tree: Path, tmp_path: Path) -> None:
        nobody = self._nobody()
        group = grp.getgrgid(nobody.pw_gid).gr_name
        target = tmp_path / "t"

        result = CopyStep(StepContext()).run(
            _request(source_tree, target, phase="fix", target_group=group)
        )

        assert result.status == 200
        st = os.lstat(target / "f1")
        assert st.st_uid == 0
        assert st.st_gid == nobody.pw_gid


class TestScenario:
    """End-to-end check, fix and undo over the step."""

    def test_check_fix_then_trash(
        self, tmp_path: Path, make_ctx: Callable[..., StepContext]
    ) -> None:
        from undoable_copy.fs.trash import TrashCan
        from undoable_copy.fs.undo import default_registry

        src = tmp_path / "s"
        src.mkdir()
        (src / "f1").write_text("foo")
        target = tmp_path / "t"
        step = CopyStep(make_ctx())

        checked = step.run(_request(src, target, phase="check"))
        assert checked.status == 200
        assert checked.undo_actions == [UndoAction.trash(str(target))]

        fixed = step.run(_request(src, target, phase="fix"))
        assert fixed.status == 200
        assert (target / "f1").read_text() == "foo"

        registry = default_registry(TrashCan(tmp_path / "trash"))
        for undo in checked.undo_actions:
            registry.invoke(undo)

        assert not target.exists()
        assert (src / "f1").read_text() == "foo"

        again = step.run(_request(src, target, phase="check"))
        assert again.status == 200


def test_cp_convenience(
    source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext]
) -> None:
    result = cp(
        make_ctx(),
        source=str(source_tree),
        target=str(tmp_path / "t"),
        phase="check",
    )

    assert result.status == 200


def test_cp_accepts_single_rsync_option(
    source_tree: Path, tmp_path: Path, make_ctx: Callable[..., StepContext], fake_tools
) -> None:
    cp(
        make_ctx(),
        source=str(source_tree),
        target=str(tmp_path / "t"),
        phase="fix",
        sync_options="-rl",
    )

    assert fake_tools.sync_calls[0][2] == ["-rl"]
