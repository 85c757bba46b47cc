"""Collaborator API smoke tests over an in-memory store."""

import csv
import io
import unittest

import httpx
from sqlmodel import Session

from pricesurvey.api.deps import get_db
from pricesurvey.db.session import init_db
from pricesurvey.main import create_app
from pricesurvey.models import PRODUCTS

from tests.survey_fixtures import make_draft, memory_engine


def build_app(engine):
    app = create_app()

    def _override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override
    return app


class ApiTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = memory_engine()
        init_db(bind=self.engine)
        self.app = build_app(self.engine)
        self.http = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app),
            base_url="http://testserver/api",
        )

    async def asyncTearDown(self):
        await self.http.aclose()
        self.engine.dispose()

    async def post_draft(self, outlet_name="Mama Put Kiosk", key=None, **overrides):
        headers = {"Idempotency-Key": key} if key else {}
        return await self.http.post(
            "/submissions",
            json=make_draft(outlet_name, **overrides).to_payload(),
            headers=headers,
        )


class TestCreateSubmission(ApiTestCase):
    async def test_create_returns_id(self):
        response = await self.post_draft(key="pending_1_aaa")
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertTrue(body["id"])

    async def test_same_outlet_same_day_conflicts(self):
        await self.post_draft(key="pending_1_aaa")
        response = await self.post_draft(key="pending_2_bbb")
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["code"], "DUPLICATE")

    async def test_same_outlet_next_day_is_accepted(self):
        await self.post_draft()
        response = await self.post_draft(collectedAt="2026-10-20T10:00:00+01:00")
        self.assertEqual(response.status_code, 201)

    async def test_replayed_key_returns_original_id(self):
        first = await self.post_draft(key="pending_1_aaa")
        replay = await self.post_draft(key="pending_1_aaa")
        self.assertEqual(replay.status_code, 200)
        self.assertEqual(replay.json()["id"], first.json()["id"])

    async def test_invalid_payload_is_validation_error(self):
        payload = make_draft().to_payload()
        payload["items"] = []
        payload["customerPhone"] = "12345"
        response = await self.http.post("/submissions", json=payload)

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["code"], "VALIDATION_ERROR")
        self.assertGreaterEqual(len(body["errors"]), 2)

    async def test_client_meta_is_recorded(self):
        await self.http.post(
            "/submissions",
            json=make_draft().to_payload(),
            headers={"User-Agent": "field-agent/1.0", "sec-ch-ua-platform": '"Android"'},
        )
        items = (await self.http.get("/submissions")).json()["items"]
        self.assertEqual(items[0]["clientMeta"]["userAgent"], "field-agent/1.0")
        self.assertEqual(items[0]["clientMeta"]["platform"], '"Android"')


class TestVerifySubmission(ApiTestCase):
    async def test_verify_reports_existing_record(self):
        created = await self.post_draft()
        response = await self.http.post(
            "/submissions/verify", json={"outletName": "Mama Put Kiosk", "day": "2026-10-19"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "exists": True, "id": created.json()["id"]})

    async def test_verify_reports_missing_record(self):
        response = await self.http.post(
            "/submissions/verify", json={"outletName": "Nobody Here", "day": "2026-10-19"}
        )
        self.assertFalse(response.json()["exists"])

    async def test_verify_requires_outlet_and_day(self):
        response = await self.http.post("/submissions/verify", json={"outletName": "Mama Put Kiosk"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing outletName or day")


class TestListSubmissions(ApiTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        await self.post_draft("Mama Put Kiosk", area="Ikeja")
        await self.post_draft("Yaba Corner Shop", area="Yaba", geo=None, collectedAt="2026-10-18T15:00:00+01:00")

    async def test_lists_newest_first(self):
        body = (await self.http.get("/submissions")).json()
        self.assertEqual([i["outletName"] for i in body["items"]], ["Mama Put Kiosk", "Yaba Corner Shop"])
        self.assertEqual(body["items"][0]["day"], "2026-10-19")

    async def test_filters_by_area_and_geo(self):
        by_area = (await self.http.get("/submissions", params={"area": "yab"})).json()["items"]
        self.assertEqual([i["outletName"] for i in by_area], ["Yaba Corner Shop"])

        with_geo = (await self.http.get("/submissions", params={"hasGeo": "true"})).json()["items"]
        self.assertEqual([i["outletName"] for i in with_geo], ["Mama Put Kiosk"])

    async def test_filters_by_outlet_name(self):
        items = (await self.http.get("/submissions", params={"outletName": "mama"})).json()["items"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["items"][0]["productName"], "SBC 40cl")

    async def outlets(self, **params):
        return [i["outletName"] for i in (await self.http.get("/submissions", params=params)).json()["items"]]

    async def test_date_bounds_are_inclusive(self):
        both = await self.outlets(**{"from": "2026-10-18T15:00:00+01:00", "to": "2026-10-19T09:30:00+01:00"})
        self.assertEqual(both, ["Mama Put Kiosk", "Yaba Corner Shop"])

        self.assertEqual(await self.outlets(**{"from": "2026-10-18T15:00:01+01:00"}), ["Mama Put Kiosk"])
        self.assertEqual(await self.outlets(to="2026-10-19T09:29:59+01:00"), ["Yaba Corner Shop"])

    async def test_bounds_compare_instants_across_offsets(self):
        # 08:30Z is the Ikeja survey; a bound without offset is UTC
        self.assertEqual(await self.outlets(**{"from": "2026-10-19T08:30:00"}), ["Mama Put Kiosk"])
        self.assertEqual(await self.outlets(**{"from": "2026-10-19T04:30:00-04:00"}), ["Mama Put Kiosk"])
        self.assertEqual(await self.outlets(**{"from": "2026-10-19T04:30:01-04:00"}), [])

    async def test_collected_at_is_returned_in_utc(self):
        items = (await self.http.get("/submissions")).json()["items"]
        self.assertEqual(items[0]["collectedAt"], "2026-10-19T08:30:00Z")

    async def test_export_writes_one_row_per_product_line(self):
        response = await self.http.get("/submissions.csv")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertRegex(
            response.headers["content-disposition"],
            r'^attachment; filename="price-survey-\d{4}-\d{2}-\d{2}\.csv"$',
        )
        rows = list(csv.reader(io.StringIO(response.text)))
        self.assertEqual(rows[0][:4], ["ID", "Customer Name", "Customer Phone", "Outlet Name"])
        self.assertEqual(len(rows), 1 + 4)
        self.assertEqual([r[3] for r in rows[1:]], ["Mama Put Kiosk"] * 2 + ["Yaba Corner Shop"] * 2)
        self.assertEqual(rows[1][8:11], ["SBC 40cl", "180.0", "200.0"])
        self.assertEqual(rows[3][5:8], ["", "", ""])

    async def test_export_uses_list_filters(self):
        response = await self.http.get("/submissions.csv", params={"area": "yaba", "hasGeo": "false"})
        rows = list(csv.reader(io.StringIO(response.text)))
        self.assertEqual({r[3] for r in rows[1:]}, {"Yaba Corner Shop"})
        self.assertEqual(len(rows), 3)


class TestMiscRoutes(ApiTestCase):
    async def test_health(self):
        response = await self.http.get("/health")
        self.assertEqual(response.json()["status"], "ok")

    async def test_products(self):
        response = await self.http.get("/products")
        self.assertEqual(response.json()["items"], list(PRODUCTS))

    async def test_logs_include_stored_submission(self):
        await self.post_draft()
        logs = (await self.http.get("/logs", params={"limit": 200})).json()["logs"]
        self.assertTrue(any(e["message"].startswith("Stored submission") for e in logs))
        self.assertEqual(logs[0]["service"], "price-survey-api")

    async def test_logs_filter_by_level(self):
        await self.post_draft()
        logs = (await self.http.get("/logs", params={"level": "WARNING"})).json()["logs"]
        self.assertTrue(all(e["level"] in ("WARNING", "ERROR", "CRITICAL") for e in logs))


if __name__ == "__main__":
    unittest.main()
