"""Test status command functionality."""

from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from conftest import create_test_file
from site_sync.cli.commands import status as status_command
from site_sync.cli.commands.status import display_changes, run_status
from site_sync.cli.main import app
from site_sync.sync.utils import SyncPlan


@pytest.fixture
def output(monkeypatch) -> StringIO:
    """Point the command's console at a buffer."""
    buffer = StringIO()
    monkeypatch.setattr(status_command, "console", Console(file=buffer, width=120))
    return buffer


def flat(text: str) -> str:
    return " ".join(text.split())


def test_display_no_changes(output):
    display_changes("Test Files", SyncPlan(), verbose=False)
    assert "No changes" in output.getvalue()


def test_display_compact_changes(output):
    plan = SyncPlan(
        to_upload={"docs/new.html", "docs/mod.html"},
        to_delete={"old/deleted.html"},
        added={"docs/new.html"},
        removed={"old/deleted.html"},
    )
    display_changes("Test Files", plan, verbose=False)
    text = flat(output.getvalue())

    assert "docs/ +1 new ~1 modified" in text
    assert "old/ -1 deleted" in text


def test_display_verbose_changes(output):
    plan = SyncPlan(
        to_upload={"docs/new.html", "index.html"},
        to_delete={"old/deleted.html"},
        added={"docs/new.html"},
        removed={"old/deleted.html"},
        checksums={"docs/new.html": "abcdef123456", "index.html": "99887766aa"},
    )
    display_changes("Test Files", plan, verbose=True)
    text = flat(output.getvalue())

    assert "Found 1 new, 1 modified, 1 deleted" in text
    assert "new.html (abcdef12)" in text
    assert "index.html (99887766)" in text
    assert "deleted.html" in text


def test_display_kept_when_deletion_disabled(output):
    plan = SyncPlan(
        to_upload={"index.html"},
        unchanged={"old.html"},
        removed={"old.html"},
    )
    display_changes("Test Files", plan, verbose=False)
    assert "1 removed locally, kept remotely" in flat(output.getvalue())


@pytest.mark.asyncio
async def test_run_status(monkeypatch, output, sync_service, object_store, config_home, source_dir: Path):
    monkeypatch.setattr(status_command, "get_sync_service", lambda config: sync_service)
    await create_test_file(source_dir / "index.html", "home")
    await create_test_file(source_dir / "css/site.css", "body {}")

    plan = await run_status(source_dir, verbose=True, bucket="test-bucket")

    assert plan.added == {"index.html", "css/site.css"}
    assert "Found 2 new" in flat(output.getvalue())
    # planning never touches the store
    assert object_store.put_calls == []


def test_status_with_unknown_profile_exits_cleanly(
    monkeypatch, config_home, source_dir: Path, tmp_path: Path
):
    monkeypatch.setattr("site_sync.cli.app.setup_logging", lambda **kwargs: None)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "missing-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "missing-credentials"))
    monkeypatch.setenv("SITE_SYNC_PROFILE", "does-not-exist")

    result = CliRunner().invoke(
        app, ["status", "--source", str(source_dir), "--bucket", "test-bucket"]
    )

    assert result.exit_code == 1
    # a handled error, not a botocore traceback
    assert isinstance(result.exception, SystemExit)
