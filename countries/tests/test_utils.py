import os
import shutil
import tempfile
from unittest import mock

import requests
from django.test import SimpleTestCase
from PIL import Image

from countries import utils
from countries.exceptions import RenderFailure, UpstreamUnavailable

from .helpers import COUNTRIES_URL, FakeResp, FakeSession


class FetchJsonTests(SimpleTestCase):

    def test_returns_payload_untouched(self):
        session = FakeSession({COUNTRIES_URL: [FakeResp({"data": [1, 2]})]})
        self.assertEqual(utils.fetch_json(COUNTRIES_URL, session=session, backoff=0), {"data": [1, 2]})
        self.assertEqual(session.calls, [(COUNTRIES_URL, 12)])
        self.assertFalse(session.closed)

    def test_retries_until_success(self):
        session = FakeSession({COUNTRIES_URL: [
            requests.ConnectionError("reset"),
            FakeResp({}, status=502),
            FakeResp(["ok"]),
        ]})
        self.assertEqual(utils.fetch_json(COUNTRIES_URL, session=session, backoff=0), ["ok"])
        self.assertEqual(len(session.calls), 3)

    def test_gives_up_after_three_attempts(self):
        session = FakeSession({COUNTRIES_URL: [requests.Timeout("slow")]})
        with self.assertRaises(UpstreamUnavailable) as ctx:
            utils.fetch_json(COUNTRIES_URL, session=session, backoff=0, label="Countries API")
        self.assertEqual(len(session.calls), 3)
        self.assertEqual(ctx.exception.source, COUNTRIES_URL)
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.details, "Could not fetch data from Countries API")

    def test_invalid_json_counts_as_failure(self):
        session = FakeSession({COUNTRIES_URL: [FakeResp(ValueError("not json"))]})
        with self.assertRaises(UpstreamUnavailable):
            utils.fetch_json(COUNTRIES_URL, session=session, backoff=0, attempts=2)
        self.assertEqual(len(session.calls), 2)

    def test_backoff_between_attempts(self):
        session = FakeSession({COUNTRIES_URL: [requests.ConnectionError("down")]})
        with mock.patch("countries.utils.time.sleep") as sleep:
            with self.assertRaises(UpstreamUnavailable):
                utils.fetch_json(COUNTRIES_URL, session=session, backoff=0.5)
        self.assertEqual([c.args[0] for c in sleep.call_args_list], [0.5, 1.0])

    def test_owns_and_closes_default_session(self):
        session = FakeSession({COUNTRIES_URL: [FakeResp([])]})
        with mock.patch("countries.utils.requests.Session", return_value=session):
            utils.fetch_json(COUNTRIES_URL, backoff=0)
        self.assertTrue(session.closed)


class MultiplierTests(SimpleTestCase):

    def test_range(self):
        for _ in range(200):
            self.assertTrue(1000 <= utils.make_multiplier() <= 2000)


class SummaryImageTests(SimpleTestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_writes_png_and_creates_directory(self):
        path = os.path.join(self.tmp, "nested", "summary.png")
        top = [{"name": "Alpha", "estimated_gdp": 750000000.0}, {"name": None, "estimated_gdp": 12.5}]

        self.assertEqual(utils.generate_summary_image(path, 2, top, "2025-01-01T00:00:00+00:00"), path)

        with Image.open(path) as img:
            self.assertEqual(img.format, "PNG")
            self.assertEqual(img.size, (800, 500))

    def test_empty_top_list(self):
        path = os.path.join(self.tmp, "summary.png")
        utils.generate_summary_image(path, 0, [], "2025-01-01T00:00:00+00:00")
        self.assertTrue(os.path.exists(path))

    def test_unwritable_path_raises_render_failure(self):
        blocker = os.path.join(self.tmp, "file")
        with open(blocker, "w") as fh:
            fh.write("not a directory")
        with self.assertRaises(RenderFailure):
            utils.generate_summary_image(os.path.join(blocker, "summary.png"), 0, [], "now")
