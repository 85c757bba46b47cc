"""Field agent CLI commands and location capture."""

import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from pricesurvey import agent
from pricesurvey.core.errors import GeoFailureReason, GeolocationError
from pricesurvey.services.connectivity import ConnectivityMonitor
from pricesurvey.services.dispatcher import Outcome
from pricesurvey.services.geolocation import FixedLocationProvider, UnsupportedProvider, capture_location
from pricesurvey.services.notifications import NotificationLog
from pricesurvey.services.sync import SubmissionSync

from tests.survey_fixtures import FixedReconciler, ScriptedDispatcher, make_draft, memory_queue


class AgentTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.dispatcher = ScriptedDispatcher()
        self.monitor = ConnectivityMonitor(online=True)
        self.sync = SubmissionSync(
            memory_queue(),
            self.monitor,
            self.dispatcher,
            FixedReconciler(),
            max_attempts=3,
            settle_seconds=0,
            notifications=NotificationLog(),
        )
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write_survey(self, payload) -> Path:
        path = Path(self.tmp.name) / "survey.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    async def run_command(self, coro):
        out = io.StringIO()
        with redirect_stdout(out):
            code = await coro
        return code, out.getvalue()


class TestSubmitCommand(AgentTestCase):
    async def test_submit_delivers(self):
        path = self.write_survey(make_draft().to_payload())
        code, out = await self.run_command(agent._submit(self.sync, path))

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["status"], "delivered")

    async def test_submit_offline_queues(self):
        self.monitor.set_online(False)
        path = self.write_survey(make_draft().to_payload())
        code, out = await self.run_command(agent._submit(self.sync, path))

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["status"], "queued")
        self.assertEqual(await self.sync.queue.count(), 1)

    async def test_submit_rejects_invalid_file(self):
        payload = make_draft().to_payload()
        payload["items"] = []
        code, out = await self.run_command(agent._submit(self.sync, self.write_survey(payload)))

        self.assertEqual(code, 2)
        self.assertFalse(json.loads(out)["ok"])
        self.assertEqual(self.dispatcher.calls, [])

    async def test_submit_reports_server_rejection(self):
        self.dispatcher.default = Outcome.VALIDATION_REJECTED
        path = self.write_survey(make_draft().to_payload())
        code, _ = await self.run_command(agent._submit(self.sync, path))
        self.assertEqual(code, 2)


class TestSubmitFlushesBacklog(AgentTestCase):
    async def test_online_submit_also_delivers_earlier_queue(self):
        await self.sync.queue.enqueue(make_draft("Earlier Outlet"))
        path = self.write_survey(make_draft().to_payload())

        code, out = await self.run_command(agent._submit_and_resync(self.sync, path))

        self.assertEqual(code, 0)
        self.assertEqual(await self.sync.queue.count(), 0)
        self.assertCountEqual(
            [r.outlet_name for r in self.dispatcher.calls],
            ["Mama Put Kiosk", "Earlier Outlet"],
        )
        self.assertIn("[info] Successfully synced 1 submission", out)

    async def test_offline_submit_leaves_backlog_alone(self):
        self.monitor.set_online(False)
        await self.sync.queue.enqueue(make_draft("Earlier Outlet"))
        path = self.write_survey(make_draft().to_payload())

        code, _ = await self.run_command(agent._submit_and_resync(self.sync, path))

        self.assertEqual(code, 0)
        self.assertEqual(self.dispatcher.calls, [])
        self.assertEqual(await self.sync.queue.count(), 2)


class TestSyncAndStatusCommands(AgentTestCase):
    async def test_sync_with_empty_queue(self):
        code, out = await self.run_command(agent._sync(self.sync))
        self.assertEqual(code, 0)
        self.assertIn("No pending submissions", out)

    async def test_sync_offline_fails(self):
        await self.sync.queue.enqueue(make_draft())
        self.monitor.set_online(False)
        code, out = await self.run_command(agent._sync(self.sync))
        self.assertEqual(code, 1)
        self.assertIn("offline", out)

    async def test_sync_reports_counts(self):
        await self.sync.queue.enqueue(make_draft())
        code, out = await self.run_command(agent._sync(self.sync))
        self.assertEqual(code, 0)
        self.assertIn("Synced: 1  Failed: 0", out)

    async def test_sync_prints_dropped_survey_notice(self):
        self.dispatcher.default = Outcome.VALIDATION_REJECTED
        await self.sync.queue.enqueue(make_draft())
        code, out = await self.run_command(agent._sync(self.sync))

        self.assertEqual(code, 1)
        self.assertIn("[error] Survey for Mama Put Kiosk could not be synced", out)
        self.assertIn("[warn] Failed to sync 1 submission", out)
        self.assertEqual(len(self.sync.notifications), 0)

    async def test_status_with_metrics(self):
        await self.sync.queue.enqueue(make_draft())
        code, out = await self.run_command(agent._status(self.sync, metrics=True))

        self.assertEqual(code, 0)
        first_line = out.splitlines()[0]
        self.assertEqual(json.loads(first_line), {"online": True, "pending": 1})
        self.assertIn("price_survey_pending_submissions 1.0", out)


class TestParseArgs(unittest.TestCase):
    def test_submit_requires_file(self):
        args = agent.parse_args(["--offline", "submit", "survey.json"])
        self.assertTrue(args.offline)
        self.assertEqual(args.command, "submit")
        self.assertEqual(args.file, Path("survey.json"))

    def test_command_is_required(self):
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            agent.parse_args([])


class TestCaptureLocation(unittest.IsolatedAsyncioTestCase):
    async def test_fixed_provider_returns_fix(self):
        fix = await capture_location(FixedLocationProvider(6.45, 3.39, 20.0))
        self.assertEqual((fix.lat, fix.lng, fix.accuracy), (6.45, 3.39, 20.0))

    async def test_unsupported_provider_yields_none(self):
        self.assertIsNone(await capture_location(UnsupportedProvider()))

    async def test_unsupported_provider_raises_reason(self):
        with self.assertRaises(GeolocationError) as ctx:
            await UnsupportedProvider().locate()
        self.assertIs(ctx.exception.reason, GeoFailureReason.UNSUPPORTED)


if __name__ == "__main__":
    unittest.main()
