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

import unittest
from datetime import datetime, timezone

from launchpad.completion import CompletionToggleEngine
from shared.document_store import InMemoryDocumentStore
from shared.errors import BadRequestError, NotFoundError

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _project():
    return {
        "projectId": "p1",
        "name": "Paper airplane",
        "step": [
            {
                "name": "Fold",
                "itemListElement": [
                    {"id": "d1", "text": "Fold in half", "complete": False},
                    {"id": "d2", "text": "Fold the wings"},
                ],
            },
            {"name": "Fly", "itemListElement": [{"id": "d3", "complete": True}]},
        ],
        "achievement": [
            {"id": "a1", "name": "First fold", "complete": False},
            {"id": "a2", "name": "Liftoff", "complete": False},
        ],
    }


class _InterleavingStore(InMemoryDocumentStore):
    """Runs `interloper` once, just before the first commit it sees."""

    def __init__(self):
        super().__init__()
        self.interloper = None
        self.attempts = 0

    def _commit(self, transaction):
        self.attempts += 1
        if self.interloper:
            interloper, self.interloper = self.interloper, None
            interloper()
        super()._commit(transaction)


class ToggleDirectionTest(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.store.set("projects", "p1", _project())
        self.engine = CompletionToggleEngine(self.store)

    def _direction(self, step, index):
        project = self.store.get("projects", "p1")
        return project["step"][step]["itemListElement"][index]

    def test_toggle_twice_restores_flag(self):
        self.assertTrue(self.engine.toggle_direction("p1", "d1"))
        self.assertTrue(self._direction(0, 0)["complete"])

        self.assertFalse(self.engine.toggle_direction("p1", "d1"))
        self.assertFalse(self._direction(0, 0)["complete"])

    def test_missing_flag_defaults_to_incomplete(self):
        self.assertTrue(self.engine.toggle_direction("p1", "d2"))

    def test_searches_later_steps(self):
        self.assertFalse(self.engine.toggle_direction("p1", "d3"))
        self.assertFalse(self._direction(1, 0)["complete"])

    def test_other_fields_survive(self):
        self.engine.toggle_direction("p1", "d1")

        project = self.store.get("projects", "p1")
        self.assertEqual(project["name"], "Paper airplane")
        self.assertEqual(project["step"][0]["itemListElement"][0]["text"], "Fold in half")
        self.assertFalse(project["achievement"][0]["complete"])

    def test_first_duplicate_wins(self):
        project = _project()
        project["step"][1]["itemListElement"].append({"id": "d1", "complete": False})
        self.store.set("projects", "p1", project)

        self.assertTrue(self.engine.toggle_direction("p1", "d1"))

        self.assertTrue(self._direction(0, 0)["complete"])
        self.assertFalse(self._direction(1, 1)["complete"])

    def test_missing_direction_vs_missing_project(self):
        with self.assertRaises(NotFoundError) as ctx:
            self.engine.toggle_direction("p1", "nope")
        self.assertEqual(ctx.exception.resource, "direction")

        with self.assertRaises(NotFoundError) as ctx:
            self.engine.toggle_direction("nope", "d1")
        self.assertEqual(ctx.exception.resource, "project")

    def test_project_without_steps(self):
        self.store.set("projects", "empty", {"projectId": "empty"})
        with self.assertRaises(NotFoundError) as ctx:
            self.engine.toggle_direction("empty", "d1")
        self.assertEqual(ctx.exception.resource, "direction")

    def test_requires_ids(self):
        with self.assertRaises(BadRequestError):
            self.engine.toggle_direction("p1", None)
        with self.assertRaises(BadRequestError):
            self.engine.toggle_direction("", "d1")

    def test_concurrent_toggles_do_not_lose_updates(self):
        store = _InterleavingStore()
        store.set("projects", "p1", _project())
        engine = CompletionToggleEngine(store)
        store.interloper = lambda: engine.toggle_direction("p1", "d2")
        store.attempts = 0

        self.assertTrue(engine.toggle_direction("p1", "d1"))

        project = store.get("projects", "p1")
        self.assertTrue(project["step"][0]["itemListElement"][0]["complete"])
        self.assertTrue(project["step"][0]["itemListElement"][1]["complete"])
        # First commit conflicts with the interloper and is retried.
        self.assertEqual(store.attempts, 3)


class ToggleAchievementTest(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.store.set("projects", "p1", _project())
        self.store.set("users", "u1", {"userId": "u1", "achievements": []})
        self.engine = CompletionToggleEngine(self.store, clock=lambda: FIXED_NOW)

    def _history(self):
        return self.store.get("users", "u1")["achievements"]

    def test_completing_appends_history(self):
        self.assertTrue(self.engine.toggle_achievement("p1", "a1", "u1"))

        self.assertEqual(
            self._history(), [{"id": "a1", "name": "First fold", "date": FIXED_NOW}]
        )
        self.assertTrue(self.store.get("projects", "p1")["achievement"][0]["complete"])

    def test_uncompleting_keeps_history(self):
        self.engine.toggle_achievement("p1", "a1", "u1")

        self.assertFalse(self.engine.toggle_achievement("p1", "a1", "u1"))

        self.assertEqual(len(self._history()), 1)
        self.assertFalse(self.store.get("projects", "p1")["achievement"][0]["complete"])

    def test_history_is_chronological(self):
        self.engine.toggle_achievement("p1", "a2", "u1")
        self.engine.toggle_achievement("p1", "a1", "u1")
        self.engine.toggle_achievement("p1", "a1", "u1")
        self.engine.toggle_achievement("p1", "a1", "u1")

        self.assertEqual([r["id"] for r in self._history()], ["a2", "a1", "a1"])

    def test_uses_current_display_name(self):
        project = _project()
        project["achievement"][0]["name"] = "Renamed"
        self.store.set("projects", "p1", project)

        self.engine.toggle_achievement("p1", "a1", "u1")

        self.assertEqual(self._history()[0]["name"], "Renamed")

    def test_timestamp_is_not_before_call(self):
        engine = CompletionToggleEngine(self.store)
        before = datetime.now(timezone.utc)

        engine.toggle_achievement("p1", "a1", "u1")

        self.assertGreaterEqual(self._history()[0]["date"], before)

    def test_earlier_records_are_left_untouched(self):
        earlier = [
            {"id": "a0", "name": "Old", "date": FIXED_NOW, "projectId": "pX"},
            {"id": "a9", "name": "Undated"},
        ]
        self.store.set("users", "u1", {"userId": "u1", "achievements": earlier})

        self.assertTrue(self.engine.toggle_achievement("p1", "a1", "u1"))

        history = self._history()
        self.assertEqual(history[:2], earlier)
        self.assertEqual(
            history[2], {"id": "a1", "name": "First fold", "date": FIXED_NOW}
        )

    def test_user_without_history_field(self):
        self.store.set("users", "u2", {"userId": "u2"})

        self.engine.toggle_achievement("p1", "a1", "u2")

        self.assertEqual(len(self.store.get("users", "u2")["achievements"]), 1)

    def test_missing_project_user_and_achievement(self):
        with self.assertRaises(NotFoundError) as ctx:
            self.engine.toggle_achievement("nope", "a1", "u1")
        self.assertEqual(ctx.exception.resource, "project")

        with self.assertRaises(NotFoundError) as ctx:
            self.engine.toggle_achievement("p1", "a1", "ghost")
        self.assertEqual(ctx.exception.resource, "user")

        with self.assertRaises(NotFoundError) as ctx:
            self.engine.toggle_achievement("p1", "nope", "u1")
        self.assertEqual(ctx.exception.resource, "achievement")

    def test_missing_user_leaves_flag_untouched(self):
        with self.assertRaises(NotFoundError):
            self.engine.toggle_achievement("p1", "a1", "ghost")

        self.assertFalse(self.store.get("projects", "p1")["achievement"][0]["complete"])

    def test_requires_all_ids(self):
        with self.assertRaises(BadRequestError):
            self.engine.toggle_achievement("p1", "a1", None)
        with self.assertRaises(BadRequestError):
            self.engine.toggle_achievement("p1", "", "u1")
        with self.assertRaises(BadRequestError):
            self.engine.toggle_achievement(None, "a1", "u1")


if __name__ == "__main__":
    unittest.main()
