"""Tests for the workspace service."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest

from xliff_workspace.config import WorkspaceConfig
from xliff_workspace.errors import ScanError
from xliff_workspace.events import EventType, FileWatchEvent
from xliff_workspace.service import LOGGER_NAME, WorkspaceService


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a small workspace."""
    root = tmp_path / "workspace"
    (root / "sub").mkdir(parents=True)
    (root / "messages.xlf").touch()
    (root / "de.messages.xlf").touch()
    (root / "sub" / "en.labels.xlf").touch()
    return root


@pytest.fixture
def config(tmp_path: Path) -> WorkspaceConfig:
    """Create a test configuration."""
    cfg = WorkspaceConfig()
    cfg.log_file = tmp_path / "logs" / "test.log"
    cfg.poll_interval = 0.05
    return cfg


@pytest.fixture
def service(config: WorkspaceConfig, workspace: Path) -> WorkspaceService:
    """Create a service instance."""
    return WorkspaceService(config, workspace)


class TestServiceInit:
    """Tests for service initialization."""

    def test_initial_state(self, service: WorkspaceService, workspace: Path) -> None:
        """Test that nothing is scanned or watched yet."""
        assert service.root_path == workspace
        assert len(service.index) == 0
        assert not service.watcher.is_running
        assert service.stats.scans == 0

    def test_uses_configured_root(self, config: WorkspaceConfig, workspace: Path) -> None:
        """Test that the configured root is the default."""
        config.workspace_root = workspace

        assert WorkspaceService(config).root_path == workspace

    def test_missing_root_raises(self, config: WorkspaceConfig) -> None:
        """Test that a root is required."""
        with pytest.raises(ValueError, match="No workspace root"):
            WorkspaceService(config)

    def test_invalid_log_level_raises(self, config: WorkspaceConfig, workspace: Path) -> None:
        """Test that an invalid log_level raises ValueError."""
        config.log_level = "INVALID"

        with pytest.raises(ValueError, match="Invalid log_level"):
            WorkspaceService(config, workspace)

    def test_logging_setup(self, service: WorkspaceService, config: WorkspaceConfig) -> None:
        """Test that console and file handlers are attached once."""
        assert service.logger.name == LOGGER_NAME
        assert len(service.logger.handlers) == 2
        assert config.log_file.parent.exists()

        WorkspaceService(config, service.root_path)

        assert len(logging.getLogger(LOGGER_NAME).handlers) == 2


class TestServiceScan:
    """Tests for full scans."""

    def test_scan_rebuilds_index(self, service: WorkspaceService) -> None:
        """Test that scanning seeds the index."""
        result = service.scan()

        assert result.total_files == 3
        assert len(service.index) == 2
        assert service.index.total_files == 3
        assert service.stats.scans == 1

    def test_scan_missing_root(self, config: WorkspaceConfig, tmp_path: Path) -> None:
        """Test that scan errors propagate."""
        service = WorkspaceService(config, tmp_path / "missing")

        with pytest.raises(ScanError):
            service.scan()


class TestHandleEvent:
    """Tests for applying events."""

    def test_applied_event(self, service: WorkspaceService, workspace: Path) -> None:
        """Test that index changes are counted as applied."""
        service.scan()
        path = workspace / "fr.messages.xlf"
        path.touch()

        assert service.handle_event(FileWatchEvent(EventType.CREATED, path))

        assert service.stats.events_received == 1
        assert service.stats.events_applied == 1
        assert "fr" in service.index.group_for_path(path).files

    def test_ignored_event(self, service: WorkspaceService, workspace: Path) -> None:
        """Test that events without effect are counted as ignored."""
        service.scan()

        assert not service.handle_event(
            FileWatchEvent(EventType.MODIFIED, workspace / "de.messages.xlf")
        )

        assert service.stats.events_ignored == 1

    def test_watch_event_without_loop_dropped(self, service: WorkspaceService, workspace: Path) -> None:
        """Test that events arriving outside run() are not queued."""
        service._on_watch_event(FileWatchEvent(EventType.CREATED, workspace / "x.xlf"))

        assert service._events.empty()


class TestServiceRun:
    """Tests for the run loop."""

    @pytest.mark.asyncio
    async def test_stop_ends_run(self, service: WorkspaceService) -> None:
        """Test that stop() ends the loop and stops the watcher."""
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.2)

        assert service.watcher.is_running
        assert service.stats.scans == 1

        service.stop()
        await asyncio.wait_for(task, timeout=2)

        assert not service.watcher.is_running

    @pytest.mark.asyncio
    async def test_cancel_stops_watcher(self, service: WorkspaceService) -> None:
        """Test that cancelling the run task still stops the watcher."""
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.2)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not service.watcher.is_running

    @pytest.mark.asyncio
    async def test_queued_events_applied(self, service: WorkspaceService, workspace: Path) -> None:
        """Test that events handed over from the watcher thread reach the index."""
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.2)

        path = workspace / "it.messages.xlf"
        path.touch()
        # Same path as the watcher thread takes
        service._on_watch_event(FileWatchEvent(EventType.CREATED, path))

        try:
            async with asyncio.timeout(2):
                while "it" not in service.index.group_for_path(path).files:
                    await asyncio.sleep(0.05)
        finally:
            service.stop()
            await asyncio.wait_for(task, timeout=2)

        assert service.stats.events_applied >= 1

    @pytest.mark.asyncio
    async def test_detects_created_file(self, service: WorkspaceService, workspace: Path) -> None:
        """Test that a file created on disk ends up in the index."""
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.3)

        path = workspace / "sub" / "de.labels.xlf"
        path.write_text("<xliff/>")

        try:
            async with asyncio.timeout(5):
                while "de" not in service.index.group_for_path(path).files:
                    await asyncio.sleep(0.05)
        except TimeoutError:
            pytest.skip("File system events not detected - may be environment limitation")
        finally:
            service.stop()
            await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_run_without_rescan(self, config: WorkspaceConfig, workspace: Path) -> None:
        """Test that the initial scan can be disabled."""
        config.rescan_on_start = False
        service = WorkspaceService(config, workspace)

        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.2)
        service.stop()
        await asyncio.wait_for(task, timeout=2)

        assert service.stats.scans == 0
        assert len(service.index) == 0
