"""
Tests for the Investigation Session
===================================

Tests the session controller with stub runners, a zero-latency bootstrap
and mocked or recording realtime channels.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.exceptions import InvestigationBootstrapError, StageExecutionError
from core.models import InvestigationStatus, PipelineKind, PipelineStatus
from infra.bootstrap import LocalInvestigationBootstrap
from orchestration.session import InvestigationSession


class TestInvestigationSession:
    """Test InvestigationSession functionality."""

    @pytest.fixture
    def make_session(self, fast_settings, registry_factory, mock_channel_factory):
        def factory(registry=None, bootstrap=None, channel_factory=None):
            return InvestigationSession(
                bootstrap=bootstrap or LocalInvestigationBootstrap(settings=fast_settings),
                registry=registry or registry_factory(),
                channel_factory=channel_factory or mock_channel_factory,
                settings=fast_settings,
            )
        return factory

    @pytest.mark.asyncio
    async def test_start_creates_active_investigation(self, make_session, mock_channel_factory, scenario_query):
        session = make_session()

        investigation = await session.start_new_investigation(scenario_query)

        assert investigation.id.startswith("inv_")
        assert investigation.status == InvestigationStatus.ACTIVE
        assert [p.id for p in investigation.pipelines] == list(PipelineKind)
        assert all(p.status == PipelineStatus.PENDING for p in investigation.pipelines)
        assert session.is_loading is False
        assert session.error is None
        mock_channel_factory.channels[0].connect.assert_called_once_with(investigation.id)

        await session.wait_until_finished()

    @pytest.mark.asyncio
    async def test_scenario_runs_to_completion(
        self, make_session, recording_channel_factory, update_log, scenario_query
    ):
        session = make_session(channel_factory=recording_channel_factory)

        await session.start_new_investigation(scenario_query)
        finished = await session.wait_until_finished()

        assert finished.status == InvestigationStatus.COMPLETED
        assert finished.summary == "Investigation completed. 5/5 pipelines successful."
        assert session.get_summary().completed_pipelines == 5
        assert update_log[0].type == "INVESTIGATION_STARTED"
        assert update_log[-1].type == "INVESTIGATION_COMPLETED"

    @pytest.mark.asyncio
    async def test_scenario_with_alias_failure(self, make_session, registry_factory, scenario_query):
        registry = registry_factory(
            failures={PipelineKind.ALIAS_MAPPING: StageExecutionError("Alias service unavailable")}
        )
        session = make_session(registry=registry)

        await session.start_new_investigation(scenario_query)
        finished = await session.wait_until_finished()
        summary = session.get_summary()

        assert finished.status == InvestigationStatus.ERROR
        assert finished.summary == "Investigation completed. 4/5 pipelines successful."
        assert summary.total_pipelines == 5
        assert summary.completed_pipelines == 4
        assert summary.total_result_items == 12

    @pytest.mark.asyncio
    async def test_explicit_pipelines(self, make_session):
        session = make_session()
        kinds = [PipelineKind.DEEPFAKE_DETECTION, PipelineKind.ALIAS_MAPPING, PipelineKind.DEEPFAKE_DETECTION]

        investigation = await session.start_new_investigation("check a@b.io", kinds)

        assert [p.id for p in investigation.pipelines] == kinds[:2]
        await session.wait_until_finished()

    @pytest.mark.asyncio
    async def test_bootstrap_failure(self, make_session):
        bootstrap = MagicMock()
        bootstrap.start = AsyncMock(side_effect=RuntimeError("backend down"))
        session = make_session(bootstrap=bootstrap)

        with pytest.raises(InvestigationBootstrapError):
            await session.start_new_investigation("check a@b.io")

        assert session.error == "backend down"
        assert session.is_loading is False
        assert session.current_investigation is None
        assert session.channel is None

    @pytest.mark.asyncio
    async def test_bootstrap_failure_keeps_previous(self, make_session):
        bootstrap = LocalInvestigationBootstrap()
        session = make_session(bootstrap=bootstrap)
        first = await session.start_new_investigation("check a@b.io")
        await session.wait_until_finished()

        with pytest.raises(InvestigationBootstrapError):
            await session.start_new_investigation("   ")

        assert session.current_investigation.id == first.id
        assert session.error == "Investigation query is empty"

    @pytest.mark.asyncio
    async def test_stop_mid_run(self, make_session, registry_factory, mock_channel_factory):
        log = []
        session = make_session(registry=registry_factory(delay=0.05, log=log))
        await session.start_new_investigation("check a@b.io")
        await asyncio.sleep(0.02)

        stopped = session.stop()
        await session.wait_until_finished()

        channel = mock_channel_factory.channels[0]
        assert stopped.status == InvestigationStatus.PAUSED
        assert stopped.ended_at is not None
        assert session.current_investigation.ended_at == stopped.ended_at
        assert session.current_investigation.pipelines[0].status == PipelineStatus.RUNNING
        assert len(log) == 1
        channel.disconnect.assert_called_once()
        assert session.channel is None

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, make_session, mock_channel_factory):
        session = make_session()
        await session.start_new_investigation("check a@b.io")

        first = session.stop()
        second = session.stop()
        await session.wait_until_finished()

        assert second.ended_at == first.ended_at
        mock_channel_factory.channels[0].disconnect.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_after_completion_keeps_status(self, make_session):
        session = make_session()
        await session.start_new_investigation("check a@b.io")
        finished = await session.wait_until_finished()

        stopped = session.stop()

        assert stopped.status == InvestigationStatus.COMPLETED
        assert stopped.ended_at == finished.ended_at

    @pytest.mark.asyncio
    async def test_toggle(self, make_session, registry_factory):
        session = make_session(registry=registry_factory(delay=0.05))
        await session.start_new_investigation("check a@b.io")

        assert session.toggle().status == InvestigationStatus.PAUSED
        assert session.toggle().status == InvestigationStatus.ACTIVE

        session.stop()
        await session.wait_until_finished()

    @pytest.mark.asyncio
    async def test_toggle_after_completion_is_noop(self, make_session):
        session = make_session()
        await session.start_new_investigation("check a@b.io")
        finished = await session.wait_until_finished()

        assert session.toggle() == finished

    def test_no_investigation_yet(self, make_session):
        session = make_session()

        assert session.current_investigation is None
        assert session.toggle() is None
        assert session.stop() is None
        assert session.get_summary() is None

    @pytest.mark.asyncio
    async def test_new_investigation_replaces_current(self, make_session, registry_factory, mock_channel_factory):
        session = make_session(registry=registry_factory(delay=0.05))
        first = await session.start_new_investigation("check a@b.io")
        second = await session.start_new_investigation("check c@d.io")

        first_channel, second_channel = mock_channel_factory.channels
        first_channel.disconnect.assert_called_once()
        second_channel.disconnect.assert_not_called()
        assert session.current_investigation.id == second.id != first.id

        await session.wait_until_finished()
        assert session.current_investigation.status == InvestigationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_close_releases_channel(self, make_session, mock_channel_factory):
        session = make_session()
        await session.start_new_investigation("check a@b.io")
        await session.wait_until_finished()

        session.close()

        mock_channel_factory.channels[0].disconnect.assert_called_once()
        assert session.channel is None

    @pytest.mark.asyncio
    async def test_close_cancels_running_execution(self, make_session, registry_factory):
        session = make_session(registry=registry_factory(delay=0.5))
        await session.start_new_investigation("check a@b.io")
        await asyncio.sleep(0.02)
        task = session._task

        session.close()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert not session.running

    @pytest.mark.asyncio
    async def test_runner_cancellation_does_not_stall_run(self, make_session, registry_factory):
        registry = registry_factory(failures={PipelineKind.ALIAS_MAPPING: asyncio.CancelledError()})
        session = make_session(registry=registry)

        await session.start_new_investigation("check a@b.io")
        finished = await session.wait_until_finished()

        assert finished.status == InvestigationStatus.ERROR
        assert finished.pipelines[0].status == PipelineStatus.ERROR
        assert finished.summary == "Investigation completed. 4/5 pipelines successful."
        assert session.error is None
