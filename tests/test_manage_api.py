"""Tests for the sign-in and account management endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.core.security import create_session_token
from app.schemas.users import UserLogin
from app.services.account_service import AccountService

GITHUB_TOKEN = {
    "uid": "firebase-uid-2",
    "email": "alice@example.com",
    "name": "Alice Smith",
    "firebase": {
        "sign_in_provider": "github.com",
        "identities": {"github.com": ["424242"]},
    },
}


def _verify(decoded: dict):
    return patch("app.services.auth_service.verify_firebase_token", AsyncMock(return_value=decoded))


@pytest.mark.asyncio
async def test_sign_in(client: AsyncClient):
    """Test signing in registers the user and returns a session."""
    with _verify(GITHUB_TOKEN):
        response = await client.post("/account/sign-in", json={"idToken": "firebase-token"})

    assert response.status_code == 200

    data = response.json()
    assert data["tokenType"] == "bearer"
    assert data["user"]["email"] == "alice@example.com"
    assert data["user"]["favoriteLines"] == []
    assert data["user"]["isLinkedToAlexa"] is False

    manage = await client.get("/manage", headers={"Authorization": f"Bearer {data['accessToken']}"})

    assert manage.status_code == 200
    assert manage.json()["currentLogins"] == [
        {"loginProvider": "GitHub", "providerKey": "424242", "providerDisplayName": "GitHub"},
    ]
    assert manage.json()["otherLogins"] == ["Apple", "Google"]


@pytest.mark.asyncio
async def test_sign_in_requires_token(client: AsyncClient):
    """Test the sign-in body is validated."""
    response = await client.post("/account/sign-in", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "Request validation failed"


@pytest.mark.asyncio
async def test_sign_in_invalid_token(client: AsyncClient):
    """Test an identity token that does not verify."""
    verify = AsyncMock(side_effect=ValueError("Invalid Firebase ID token"))

    with patch("app.services.auth_service.verify_firebase_token", verify):
        response = await client.post("/account/sign-in", json={"idToken": "bad"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sign_out(client: AsyncClient, auth_headers: dict):
    """Test the session cannot be used after signing out."""
    response = await client.post("/account/sign-out", headers=auth_headers)

    assert response.status_code == 204

    response = await client.get("/manage", headers=auth_headers)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_manage_requires_sign_in(client: AsyncClient):
    """Test the manage endpoints need a session."""
    response = await client.get("/manage")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


@pytest.mark.asyncio
async def test_update_line_preferences(client: AsyncClient, auth_headers: dict, test_user, accounts: AccountService):
    """Test updating favorite lines."""
    response = await client.post(
        "/manage/update-line-preferences",
        json={"etag": test_user.etag, "favoriteLines": ["victoria", "northern"]},
        headers=auth_headers,
    )

    assert response.status_code == 200

    data = response.json()
    assert data["updated"] is True
    assert data["result"] == "applied"

    stored = await accounts.get_user_by_id(test_user.id)
    assert stored.favorite_lines == ["northern", "victoria"]
    assert data["etag"] == stored.etag


@pytest.mark.asyncio
async def test_update_line_preferences_unchanged(client: AsyncClient, auth_headers: dict, test_user):
    """Test resubmitting the stored lines."""
    response = await client.post(
        "/manage/update-line-preferences",
        json={"etag": test_user.etag, "favoriteLines": ["central", "district"]},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["updated"] is None
    assert response.json()["result"] == "not_attempted"


@pytest.mark.asyncio
async def test_update_line_preferences_stale_etag(client: AsyncClient, auth_headers: dict, test_user, accounts):
    """Test an update from an old revision is a conflict."""
    etag = test_user.etag
    await accounts.update_user(test_user.model_copy(update={"given_name": "Alicia"}), etag)

    response = await client.post(
        "/manage/update-line-preferences",
        json={"etag": etag, "favoriteLines": ["victoria"]},
        headers=auth_headers,
    )

    assert response.status_code == 409
    assert (await accounts.get_user_by_id(test_user.id)).favorite_lines == ["central", "district"]


@pytest.mark.asyncio
async def test_update_line_preferences_invalid_line(client: AsyncClient, auth_headers: dict, test_user):
    """Test an unknown line is rejected."""
    response = await client.post(
        "/manage/update-line-preferences",
        json={"etag": test_user.etag, "favoriteLines": ["not-a-real-line"]},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "One or more of the specified lines is not valid."


@pytest.mark.asyncio
async def test_update_line_preferences_without_etag(client: AsyncClient, auth_headers: dict):
    """Test the ETag is required."""
    response = await client.post(
        "/manage/update-line-preferences",
        json={"favoriteLines": ["victoria"]},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["details"] == []


@pytest.mark.asyncio
async def test_link_account(client: AsyncClient, auth_headers: dict, test_user, accounts: AccountService):
    """Test linking another provider."""
    with _verify(GITHUB_TOKEN):
        response = await client.post("/manage/link-account", json={"idToken": "firebase-token"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["succeeded"] is True
    assert (await accounts.get_user_by_login("GitHub", "424242")).id == test_user.id


@pytest.mark.asyncio
async def test_link_account_owned_by_another_user(client: AsyncClient, auth_headers: dict, make_user):
    """Test linking a login that belongs to someone else."""
    await make_user(logins=[UserLogin(login_provider="GitHub", provider_key="424242")])

    with _verify(GITHUB_TOKEN):
        response = await client.post("/manage/link-account", json={"idToken": "firebase-token"}, headers=auth_headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_remove_account_link(client: AsyncClient, make_user, accounts: AccountService):
    """Test unlinking one of two logins."""
    user = await make_user(
        logins=[
            UserLogin(login_provider="Google", provider_key="google-1"),
            UserLogin(login_provider="GitHub", provider_key="github-1"),
        ]
    )
    headers = {"Authorization": f"Bearer {create_session_token(user.id)}"}

    response = await client.post(
        "/manage/remove-account-link",
        json={"loginProvider": "GitHub", "providerKey": "github-1"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["succeeded"] is True
    assert response.json()["accessToken"]
    assert await accounts.get_user_by_login("GitHub", "github-1") is None


@pytest.mark.asyncio
async def test_remove_last_account_link(client: AsyncClient, auth_headers: dict, test_user):
    """Test the only login cannot be removed."""
    login = test_user.logins[0]

    response = await client.post(
        "/manage/remove-account-link",
        json={"loginProvider": login.login_provider, "providerKey": login.provider_key},
        headers=auth_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_remove_alexa_link(client: AsyncClient, make_user, accounts: AccountService):
    """Test unlinking Alexa revokes its access to the preferences API."""
    user = await make_user(alexa_token="alexa-token", favorite_lines=["dlr"])
    headers = {"Authorization": f"Bearer {create_session_token(user.id)}"}

    assert (await client.get("/api/preferences", headers={"Authorization": "Bearer alexa-token"})).status_code == 200

    response = await client.post("/manage/remove-alexa-link", json={"etag": user.etag}, headers=headers)

    assert response.status_code == 200
    assert response.json()["succeeded"] is True
    assert (await client.get("/api/preferences", headers={"Authorization": "Bearer alexa-token"})).status_code == 401


@pytest.mark.asyncio
async def test_remove_alexa_link_stale_etag(client: AsyncClient, auth_headers: dict):
    """Test unlinking Alexa from an old revision."""
    response = await client.post("/manage/remove-alexa-link", json={"etag": '"stale"'}, headers=auth_headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_account(client: AsyncClient, auth_headers: dict, test_user, accounts: AccountService):
    """Test deleting the account ends the session."""
    response = await client.post("/manage/delete-account", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["succeeded"] is True
    assert await accounts.get_user_by_id(test_user.id) is None

    response = await client.get("/manage", headers=auth_headers)

    assert response.status_code == 401
