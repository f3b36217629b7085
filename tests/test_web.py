"""Tests for the HTTP route handlers."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from resolution_tracker.config import Config
from resolution_tracker.exceptions import ConfigNotFoundError, InvalidConfigError
from resolution_tracker.kvstore import MemoryKeyValueStore
from resolution_tracker.storage import STORAGE_KEY, ResolutionStorage
from resolution_tracker.web.app import create_app, main


class TestResolutionRoutes:
    """Tests for resolution HTTP route handlers."""

    def setup_method(self):
        self.store = MemoryKeyValueStore()
        self.storage = ResolutionStorage(self.store)
        self.app = create_app(Config(data_dir="/tmp/unused"), storage=self.storage)
        self.app.config["TESTING"] = True
        self.client = self.app.test_client()

    def _create(self, title="Learn French", milestones=("A1 course", "A2 course")):
        resp = self.client.post("/api/resolutions", json={
            "title": title,
            "description": "Conversational by summer",
            "milestones": [{"title": t} for t in milestones],
        })
        assert resp.status_code == 201
        return resp.get_json()

    def test_health(self):
        with patch("resolution_tracker.web.routes.config_exists", return_value=False):
            resp = self.client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"
        assert resp.get_json()["config_loaded"] is False

    def test_list_empty(self):
        resp = self.client.get("/api/resolutions")
        assert resp.status_code == 200
        assert resp.get_json() == []

    def test_list_with_corrupt_storage_is_empty(self):
        asyncio.run(self.store.set_item(STORAGE_KEY, "{broken"))
        resp = self.client.get("/api/resolutions")
        assert resp.status_code == 200
        assert resp.get_json() == []

    def test_create_and_get(self):
        created = self._create()
        assert created["title"] == "Learn French"
        assert created["status"] == "not_started"
        assert created["totalMilestones"] == 2
        assert created["completedMilestones"] == 0

        resp = self.client.get(f"/api/resolutions/{created['id']}")
        assert resp.status_code == 200
        assert resp.get_json()["milestones"] == created["milestones"]

    def test_create_with_target_date(self):
        resp = self.client.post("/api/resolutions", json={
            "title": "Run",
            "milestones": [{"title": "10k", "targetDate": "2026-05-01"}],
        })
        assert resp.get_json()["milestones"][0]["targetDate"] == "2026-05-01"

    def test_create_requires_title(self):
        resp = self.client.post("/api/resolutions", json={"title": "  "})
        assert resp.status_code == 400

    def test_create_rejects_non_object_body(self):
        resp = self.client.post("/api/resolutions", json=["nope"])
        assert resp.status_code == 400

    def test_create_rejects_bad_target_date(self):
        resp = self.client.post("/api/resolutions", json={
            "title": "Run",
            "milestones": [{"title": "10k", "targetDate": "soon"}],
        })
        assert resp.status_code == 400

    def test_get_missing(self):
        assert self.client.get("/api/resolutions/nope").status_code == 404

    def test_update_keeps_existing_milestone_state(self):
        created = self._create()
        first = created["milestones"][0]
        self.client.post(f"/api/resolutions/{created['id']}/milestones/{first['id']}/toggle")

        done = self.client.get(f"/api/resolutions/{created['id']}").get_json()["milestones"][0]
        resp = self.client.put(f"/api/resolutions/{created['id']}", json={
            "title": "Learn Spanish",
            "description": "",
            "milestones": [done, {"title": "B1 course"}],
        })
        assert resp.status_code == 200
        body = resp.get_json()["resolution"]
        assert body["title"] == "Learn Spanish"
        assert body["milestones"][0]["completed"] is True
        assert body["status"] == "in_progress"
        assert resp.get_json()["justCompleted"] is False

    def test_update_that_completes_reports_it(self):
        created = self._create()
        first = created["milestones"][0]
        self.client.post(f"/api/resolutions/{created['id']}/milestones/{first['id']}/toggle")
        done = self.client.get(f"/api/resolutions/{created['id']}").get_json()["milestones"][0]

        resp = self.client.put(f"/api/resolutions/{created['id']}", json={
            "title": "Learn French", "milestones": [done],
        })
        assert resp.get_json()["justCompleted"] is True
        assert "completedAt" in resp.get_json()["resolution"]

    def test_string_completed_flag_rejected(self):
        created = self._create()
        milestone = dict(created["milestones"][0], completed="false")
        resp = self.client.put(f"/api/resolutions/{created['id']}", json={
            "title": "Learn French", "milestones": [milestone],
        })
        assert resp.status_code == 400

        stored = self.client.get(f"/api/resolutions/{created['id']}").get_json()
        assert stored["milestones"][0]["completed"] is False

    def test_toggle_to_completion(self):
        created = self._create()
        url = f"/api/resolutions/{created['id']}/milestones/%s/toggle"

        first = self.client.post(url % created["milestones"][0]["id"]).get_json()
        assert first["justCompleted"] is False
        assert first["resolution"]["status"] == "in_progress"

        second = self.client.post(url % created["milestones"][1]["id"]).get_json()
        assert second["justCompleted"] is True
        assert second["resolution"]["status"] == "complete"
        assert "completedAt" in second["resolution"]

    def test_toggle_unknown_milestone(self):
        created = self._create()
        resp = self.client.post(f"/api/resolutions/{created['id']}/milestones/nope/toggle")
        assert resp.status_code == 404

    def test_whats_next(self):
        created = self._create()
        resp = self.client.put(
            f"/api/resolutions/{created['id']}/whats-next", json={"whatsNext": "Find a tutor"}
        )
        assert resp.status_code == 200
        assert resp.get_json()["resolution"]["whatsNext"] == "Find a tutor"

    def test_journal(self):
        created = self._create()
        url = f"/api/resolutions/{created['id']}/journal"
        self.client.post(url, json={"text": "first"})
        resp = self.client.post(url, json={"text": "second"})
        assert resp.status_code == 201
        texts = [j["text"] for j in resp.get_json()["resolution"]["journalEntries"]]
        assert texts == ["second", "first"]

    def test_blank_journal(self):
        created = self._create()
        resp = self.client.post(f"/api/resolutions/{created['id']}/journal", json={"text": " "})
        assert resp.status_code == 400

    def test_delete(self):
        created = self._create()
        resp = self.client.delete(f"/api/resolutions/{created['id']}")
        assert resp.status_code == 204
        assert self.client.get("/api/resolutions").get_json() == []

    def test_write_failure_reports_not_saved(self):
        store = MagicMock()
        store.get_item = AsyncMock(return_value=None)
        store.set_item = AsyncMock(side_effect=OSError("read-only filesystem"))
        self.app.extensions["resolution_storage"] = ResolutionStorage(store)

        resp = self.client.post("/api/resolutions", json={"title": "Run"})
        assert resp.status_code == 500
        assert "not saved" in resp.get_json()["error"]


class TestCreateApp:
    """Tests for the application factory."""

    def test_uses_file_store_under_data_dir(self, tmp_path):
        app = create_app(Config(data_dir=str(tmp_path / "data")))
        client = app.test_client()

        resp = client.post("/api/resolutions", json={"title": "Run"})
        assert resp.status_code == 201
        assert any((tmp_path / "data").iterdir())

    @patch("resolution_tracker.web.app.config_exists", return_value=False)
    @patch("resolution_tracker.web.app.default_config")
    def test_falls_back_to_defaults(self, mock_default, mock_exists, tmp_path):
        mock_default.return_value = Config(data_dir=str(tmp_path))
        app = create_app()
        assert app.config["DATA_DIR"] == str(tmp_path)

    @patch("resolution_tracker.web.app.load_config")
    @patch("resolution_tracker.web.app.config_exists", return_value=True)
    def test_raises_when_invalid_config(self, mock_exists, mock_load):
        mock_load.side_effect = ValueError("Invalid configuration: bad level")
        with pytest.raises(InvalidConfigError, match="bad level"):
            create_app()

    @patch("resolution_tracker.web.app.load_config")
    @patch("resolution_tracker.web.app.config_exists", return_value=True)
    def test_raises_when_config_vanishes(self, mock_exists, mock_load):
        mock_load.side_effect = FileNotFoundError("Configuration not found")
        with pytest.raises(ConfigNotFoundError):
            create_app()

    def test_invalid_config_file(self, tmp_path):
        (tmp_path / "config.toml").write_text('[logging]\nlevel = "LOUD"\n')
        with patch("resolution_tracker.config.get_config_dir", return_value=tmp_path):
            with pytest.raises(InvalidConfigError, match="Logging level"):
                create_app()

    @patch("resolution_tracker.web.app.create_app")
    def test_main_exits_on_invalid_config(self, mock_create):
        mock_create.side_effect = InvalidConfigError("bad level")
        with pytest.raises(SystemExit, match="bad level"):
            main()
