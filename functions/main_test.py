# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
# Standard library imports
import os
from datetime import datetime, timezone
import unittest
from unittest.mock import patch, MagicMock

# Third-party library imports
from functions_framework import create_app
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

# Local application imports
# This patch must be applied before importing 'main'
with patch("firebase_admin.initialize_app"):
    import main
from shared.document_store import InMemoryDocumentStore
from shared.errors import StoreFailureError

MAIN_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "main.py")


def _project():
    return {
        "projectId": "p1",
        "step": [{"itemListElement": [{"id": "d1", "complete": False}]}],
        "achievement": [{"id": "a1", "name": "First flight", "complete": False}],
    }


class _CallableTestCase(unittest.TestCase):
    """Builds a functions-framework test client for one callable function."""

    function_name = None

    @patch("firebase_admin.initialize_app")
    def setUp(self, initialize_app_mock):
        self.client = create_app(self.function_name, MAIN_PATH).test_client()
        self.store = InMemoryDocumentStore()
        self.store.set(
            "users", "u1", {"userId": "u1", "currentProjects": [], "achievements": []}
        )
        patcher = patch("main._document_store", return_value=self.store)
        patcher.start()
        self.addCleanup(patcher.stop)

    def call(self, payload):
        return self.client.post("/", json={"data": payload})

    def assertError(self, response, status_code, status):
        self.assertEqual(
            response.status_code,
            status_code,
            f"Unexpected status {response.status_code}. Body: {response.get_data(as_text=True)}",
        )
        response_data = response.get_json()
        self.assertIn("error", response_data)
        self.assertEqual(response_data["error"]["status"], status)


class TestMainCreateProject(_CallableTestCase):
    function_name = "create_project"

    def test_create_project(self):
        # Act
        response = self.call({"userId": "u1", "projectData": _project()})

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["result"], {"projectId": "p1"})
        self.assertEqual(self.store.get("users", "u1")["currentProjects"], ["p1"])

    def test_create_project_missing_fields(self):
        response = self.call({"userId": "u1"})
        self.assertError(response, 400, "INVALID_ARGUMENT")

    def test_create_project_unknown_user(self):
        response = self.call({"userId": "ghost", "projectData": _project()})
        self.assertError(response, 404, "NOT_FOUND")
        self.assertIsNone(self.store.get("projects", "p1"))


class TestMainDeleteProject(_CallableTestCase):
    function_name = "delete_project"

    def test_delete_project(self):
        # Arrange
        self.store.set("projects", "p1", {**_project(), "owners": ["u1"]})
        self.store.update("users", "u1", {"currentProjects": ["p1"]})

        # Act
        response = self.call({"projectId": "p1", "userId": "u1"})

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.store.get("projects", "p1"))
        self.assertEqual(self.store.get("users", "u1")["currentProjects"], [])

    def test_delete_project_unknown_user(self):
        response = self.call({"projectId": "p1", "userId": "ghost"})
        self.assertError(response, 404, "NOT_FOUND")


class TestMainGetCurrentProjects(_CallableTestCase):
    function_name = "get_current_projects"

    def test_get_current_projects(self):
        self.store.update("users", "u1", {"currentProjects": ["p2", "p1"]})

        response = self.call({"userId": "u1"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.get_json()["result"], {"currentProjects": ["p2", "p1"]}
        )

    def test_get_current_projects_missing_user_id(self):
        self.assertError(self.call({}), 400, "INVALID_ARGUMENT")

    def test_store_failure(self):
        with patch.object(self.store, "get", side_effect=StoreFailureError("down")):
            response = self.call({"userId": "u1"})
        self.assertError(response, 500, "INTERNAL")


class TestMainReadProject(_CallableTestCase):
    function_name = "read_project"

    def test_read_project_hides_owner_index(self):
        self.store.set("projects", "p1", {**_project(), "owners": ["u1"]})

        response = self.call({"projectId": "p1"})

        self.assertEqual(response.status_code, 200)
        project = response.get_json()["result"]
        self.assertEqual(project["projectId"], "p1")
        self.assertNotIn("owners", project)

    def test_read_missing_project(self):
        response = self.call({"projectId": "nope"})

        self.assertError(response, 404, "NOT_FOUND")


class TestMainToggleDirectionComplete(_CallableTestCase):
    function_name = "toggle_direction_complete"

    def test_toggle_direction(self):
        # Arrange
        self.store.set("projects", "p1", _project())
        payload = {"projectId": "p1", "directionId": "d1"}

        # Act / Assert
        response = self.call(payload)
        self.assertEqual(response.get_json()["result"], {"complete": True})
        response = self.call(payload)
        self.assertEqual(response.get_json()["result"], {"complete": False})

    def test_toggle_missing_direction(self):
        self.store.set("projects", "p1", _project())

        response = self.call({"projectId": "p1", "directionId": "nope"})

        self.assertError(response, 404, "NOT_FOUND")
        self.assertIn("Direction", response.get_json()["error"]["message"])


class TestMainToggleAchievementComplete(_CallableTestCase):
    function_name = "toggle_achievement_complete"

    def test_toggle_achievement(self):
        # Arrange
        self.store.set("projects", "p1", _project())

        # Act
        response = self.call({"userId": "u1", "projectId": "p1", "achievementId": "a1"})

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["result"], {"complete": True})
        history = self.store.get("users", "u1")["achievements"]
        self.assertEqual([(r["id"], r["name"]) for r in history], [("a1", "First flight")])

    def test_toggle_achievement_requires_user(self):
        self.store.set("projects", "p1", _project())

        response = self.call({"projectId": "p1", "achievementId": "a1"})

        self.assertError(response, 400, "INVALID_ARGUMENT")


class TestMainGetAchievements(_CallableTestCase):
    function_name = "get_achievements"

    def test_dates_are_serialized(self):
        date = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        self.store.update(
            "users", "u1", {"achievements": [{"id": "a1", "name": "A", "date": date}]}
        )

        response = self.call({"userId": "u1"})

        self.assertEqual(
            response.get_json()["result"],
            {"achievements": [{"id": "a1", "name": "A", "date": date.isoformat()}]},
        )


class TestMainCreateUserDocument(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryDocumentStore()

    @patch.object(main, "_is_locally_emulated", return_value=False)
    @patch.object(main, "_document_store")
    def test_create_user_document_uses_server_timestamp(
        self, mock_document_store, mock_emulated
    ):
        # Arrange: a Firestore-like store that records the write verbatim.
        mock_store = MagicMock()
        mock_store.run_transaction.side_effect = lambda fn: fn(mock_store)
        mock_store.get.return_value = None
        mock_document_store.return_value = mock_store
        event = MagicMock()
        event.data.uid = "new-user"

        # Act
        main.create_user_document.__wrapped__(event)

        # Assert
        mock_store.set.assert_called_once()
        collection, doc_id, document = mock_store.set.call_args.args
        self.assertEqual((collection, doc_id), ("users", "new-user"))
        self.assertIs(document["joinedDate"], SERVER_TIMESTAMP)
        self.assertEqual(document["currentProjects"], [])

    @patch.object(main, "_is_locally_emulated", return_value=True)
    @patch.object(main, "_document_store")
    def test_create_user_document_in_emulator(self, mock_document_store, mock_emulated):
        mock_document_store.return_value = self.store
        event = MagicMock()
        event.data.uid = "new-user"

        main.create_user_document.__wrapped__(event)

        document = self.store.get("users", "new-user")
        self.assertEqual(document["userId"], "new-user")
        self.assertIsNotNone(document["joinedDate"])
        self.assertIsNot(document["joinedDate"], SERVER_TIMESTAMP)
