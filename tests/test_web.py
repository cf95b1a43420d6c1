"""Tests for the JSON API."""

import pytest
from fastapi.testclient import TestClient

from phasewise.errors import CONFLICT_MESSAGE
from phasewise.models import Phase
from phasewise.web import create_app

USER = "athlete-1"


@pytest.fixture
def client(sync_grid, temp_db_path, settings):
    with TestClient(create_app(temp_db_path, settings)) as test_client:
        yield test_client


@pytest.fixture
def started(client):
    response = client.post(
        "/program/start",
        json={
            "user_id": USER,
            "category_id": 1,
            "age_group": "14-17",
            "years_of_experience": 0.5,
            "training_days_per_week": 3,
            "weeks_until_season": 6,
        },
    )
    assert response.status_code == 201
    return response.json()


def slot(week: int, day: int, phase: str = "GPP") -> dict:
    return {"phase": phase, "week": week, "day": day}


class TestProgramRoutes:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_start_program(self, started):
        assert started["phase"] == "GPP"
        assert started["skill_level"] == "Novice"
        assert started["unlocked_phases"] == ["GPP"]

    def test_start_twice_conflicts(self, client, started):
        response = client.post(
            "/program/start",
            json={
                "user_id": USER,
                "category_id": 1,
                "age_group": "14-17",
                "years_of_experience": 0.5,
                "training_days_per_week": 3,
            },
        )
        assert response.status_code == 409
        assert response.json()["message"] == CONFLICT_MESSAGE

    def test_unknown_age_group(self, client):
        response = client.post(
            "/program/start",
            json={
                "user_id": USER,
                "category_id": 1,
                "age_group": "5-9",
                "years_of_experience": 0,
                "training_days_per_week": 3,
            },
        )
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_missing_program(self, client):
        response = client.get("/program/nobody")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_profile_update(self, client, started):
        response = client.patch(f"/program/{USER}/profile", json={"age_group": "36+"})
        assert response.status_code == 200
        assert response.json()["age_group"] == "18+"

    def test_reassessment_not_pending(self, client, started):
        assert client.get(f"/program/{USER}/reassessment").json() == {
            "pending": False,
            "phase": None,
        }
        response = client.post(
            f"/program/{USER}/reassessment", json={"difficulty": "just_right"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "ReassessmentNotPending"

    def test_summary(self, client, started):
        summary = client.get(f"/program/{USER}/summary").json()
        assert summary["phase"] == "GPP"
        assert summary["days_completed"] == 0
        assert summary["overrides_by_phase"] == {"GPP": 0, "SPP": 0, "SSP": 0}


class TestScheduleRoutes:
    def test_today(self, client, started, sync_grid):
        today = client.get(f"/schedule/{USER}/today").json()
        assert today["template_id"] == sync_grid[(Phase.GPP, 1, 1)]
        assert today["template"]["name"] == "GPP W1D1"
        assert today["phase"] == "GPP"

    def test_resolve_out_of_range(self, client, started):
        response = client.get(
            f"/schedule/{USER}/resolve", params={"phase": "GPP", "week": 9, "day": 1}
        )
        assert response.status_code == 422

    def test_swap_and_reset(self, client, started, sync_grid):
        response = client.post(
            f"/schedule/{USER}/swap", json={"slot_a": slot(1, 1), "slot_b": slot(1, 2)}
        )
        assert response.status_code == 200
        assert response.json()["slot_swaps"]["GPP"] == {
            "1-1": sync_grid[(Phase.GPP, 1, 2)],
            "1-2": sync_grid[(Phase.GPP, 1, 1)],
        }

        resolved = client.get(
            f"/schedule/{USER}/resolve", params={"phase": "GPP", "week": 1, "day": 1}
        ).json()
        assert resolved["template_id"] == sync_grid[(Phase.GPP, 1, 2)]

        reset = client.post(f"/schedule/{USER}/phases/GPP/reset").json()
        assert reset["slot_swaps"] == {}

    def test_cross_phase_swap_conflicts(self, client, started):
        response = client.post(
            f"/schedule/{USER}/swap",
            json={"slot_a": slot(1, 1), "slot_b": slot(1, 1, phase="SPP")},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "SwapRejected"

    def test_locked_phase(self, client, started):
        response = client.get(f"/schedule/{USER}/phases/SPP")
        assert response.status_code == 409
        assert response.json()["error"] == "PhaseLocked"

    def test_focus(self, client, started, sync_grid):
        target = sync_grid[(Phase.GPP, 2, 2)]
        response = client.post(f"/schedule/{USER}/focus", json={"template_id": target})
        assert response.json()["today_focus_template_id"] == target

        today = client.get(f"/schedule/{USER}/today").json()
        assert today["template_id"] == target
        assert today["is_focus"]

        cleared = client.delete(f"/schedule/{USER}/focus").json()
        assert cleared["today_focus_template_id"] is None

    def test_phase_overview(self, client, started):
        overview = client.get(f"/schedule/{USER}/phases/GPP").json()
        assert [w["week"] for w in overview["weeks"]] == [1, 2]
        assert overview["weeks"][0]["days"][0]["is_current"]


class TestSessionRoutes:
    def _start(self, client, template_id):
        return client.post("/sessions", json={"user_id": USER, "template_id": template_id})

    def test_session_lifecycle(self, client, started, sync_grid):
        template_id = sync_grid[(Phase.GPP, 1, 1)]
        response = self._start(client, template_id)
        assert response.status_code == 201
        session = response.json()

        exercises = session["exercises"]
        exercises[0]["sets"][0] = {"completed": True, "reps_completed": 9}
        progress = client.put(
            f"/sessions/{session['id']}/progress", json={"exercises": exercises}
        )
        assert progress.status_code == 200
        assert progress.json()["exercises"][0]["sets"][0]["reps_completed"] == 9

        current = client.get("/sessions/current", params={"user_id": USER}).json()
        assert current["session"]["id"] == session["id"]

        done = client.post(f"/sessions/{session['id']}/complete")
        assert done.status_code == 200
        assert done.json()["advance"]["day"] == 2

        again = client.post(f"/sessions/{session['id']}/complete")
        assert again.status_code == 409
        assert again.json()["message"] == CONFLICT_MESSAGE

        completed = client.get("/sessions/completed", params={"user_id": USER}).json()
        assert completed["template_ids"] == [template_id]

    def test_duplicate_start(self, client, started, sync_grid):
        template_id = sync_grid[(Phase.GPP, 1, 1)]
        assert self._start(client, template_id).status_code == 201
        response = self._start(client, template_id)
        assert response.status_code == 409
        assert response.json()["error"] == "AlreadyInProgress"

    def test_misaligned_progress(self, client, started, sync_grid):
        session = self._start(client, sync_grid[(Phase.GPP, 1, 1)]).json()
        response = client.put(
            f"/sessions/{session['id']}/progress",
            json={"exercises": session["exercises"][:1]},
        )
        assert response.status_code == 422

    def test_abandon(self, client, started, sync_grid):
        session = self._start(client, sync_grid[(Phase.GPP, 1, 1)]).json()
        response = client.post(f"/sessions/{session['id']}/abandon")
        assert response.json()["status"] == "abandoned"
        assert response.json()["completed_at"] is None

        program = client.get(f"/program/{USER}").json()
        assert (program["week"], program["day"]) == (1, 1)

    def test_missing_session(self, client, started):
        assert client.get("/sessions/999").status_code == 404


class TestLifecycleRoutes:
    def test_pause_blocks_sessions(self, client, started, sync_grid):
        paused = client.post(f"/program/{USER}/pause", json={"reason": "injury"}).json()
        assert paused["pause_reason"] == "injury"
        assert paused["paused_at"] is not None

        response = client.post(
            "/sessions", json={"user_id": USER, "template_id": sync_grid[(Phase.GPP, 1, 1)]}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "ProgramPaused"

        resumed = client.post(f"/program/{USER}/resume").json()
        assert resumed["was_reset"] is False
        assert resumed["program"]["paused_at"] is None

    def test_resume_without_pause(self, client, started):
        response = client.post(f"/program/{USER}/resume")
        assert response.status_code == 409
        assert response.json()["error"] == "NotPaused"

    def test_delete_program(self, client, started):
        assert client.delete(f"/program/{USER}").status_code == 204
        assert client.get(f"/program/{USER}").status_code == 404
        assert client.delete(f"/program/{USER}").status_code == 404


class TestMaxRoutes:
    def test_set_and_list(self, client):
        response = client.put(f"/program/{USER}/maxes/back_squat", json={"one_rep_max": 100})
        assert response.status_code == 200
        assert response.json()["source"] == "user_input"

        maxes = client.get(f"/program/{USER}/maxes").json()["maxes"]
        assert [(m["exercise_id"], m["one_rep_max"]) for m in maxes] == [("back_squat", 100)]

    def test_from_set_keeps_higher(self, client):
        client.put(f"/program/{USER}/maxes/back_squat", json={"one_rep_max": 100})
        update = client.post(
            f"/program/{USER}/maxes/back_squat/from-set", json={"weight": 60, "reps": 5}
        ).json()
        assert update["action"] == "unchanged"
        assert update["previous_max"] == 100

    def test_rejects_bad_values(self, client):
        response = client.put(f"/program/{USER}/maxes/back_squat", json={"one_rep_max": 0})
        assert response.status_code == 422
        response = client.put(f"/program/{USER}/maxes/back_squat", json={"one_rep_max": 5000})
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_delete_missing(self, client):
        assert client.delete(f"/program/{USER}/maxes/back_squat").status_code == 404
