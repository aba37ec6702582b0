"""
Router tests for session listing query parameters.
"""

from unittest.mock import AsyncMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import get_current_user
from app.core.database import get_db
from app.modules.sessions.models import VerificationStatus
from app.modules.sessions.router import router
from app.modules.users.models import UserRole
from tests.factories import make_actor

SERVICE = "app.modules.sessions.service"


def _client(actor) -> TestClient:
    app = FastAPI()
    app.include_router(router, prefix="/sessions")
    app.dependency_overrides[get_current_user] = lambda: actor
    app.dependency_overrides[get_db] = lambda: AsyncMock()
    return TestClient(app)


class TestQueryParameters:
    def test_my_sessions_filter_is_snake_case(self):
        client = _client(make_actor(UserRole.STUDENT))

        with patch(f"{SERVICE}.list_my_sessions", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []

            response = client.get("/sessions/my", params={"verification_status": "APPROVED"})

        assert response.status_code == 200
        assert response.json() == []
        assert mock_list.await_args.kwargs["verification_status"] == VerificationStatus.APPROVED

    def test_school_sessions_filters_are_snake_case(self):
        client = _client(make_actor(UserRole.SCHOOL_ADMIN, school_id="school-1"))

        with patch(f"{SERVICE}.list_school_sessions", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []

            response = client.get(
                "/sessions/school",
                params={
                    "classroom_id": "class-1",
                    "student_id": "student-1",
                    "verification_status": "PENDING",
                },
            )

        assert response.status_code == 200
        kwargs = mock_list.await_args.kwargs
        assert kwargs["classroom_id"] == "class-1"
        assert kwargs["student_id"] == "student-1"
        assert kwargs["verification_status"] == VerificationStatus.PENDING

    def test_camel_case_name_is_ignored(self):
        client = _client(make_actor(UserRole.STUDENT))

        with patch(f"{SERVICE}.list_my_sessions", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []

            response = client.get("/sessions/my", params={"verificationStatus": "APPROVED"})

        assert response.status_code == 200
        assert mock_list.await_args.kwargs["verification_status"] is None

    def test_unknown_status_value(self):
        client = _client(make_actor(UserRole.STUDENT))

        response = client.get("/sessions/my", params={"verification_status": "MAYBE"})

        assert response.status_code == 422
