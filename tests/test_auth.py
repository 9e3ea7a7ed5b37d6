"""
Tests for authentication endpoints.
"""
from urllib.parse import parse_qs, urlsplit

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Test user registration."""
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": "newuser",
            "email": "newuser@example.com",
            "full_name": "New User",
            "password": "securepassword123",
        },
    )
    
    assert response.status_code == 201
    data = response.json()
    assert data["username"] == "newuser"
    assert data["email"] == "newuser@example.com"
    assert data["full_name"] == "New User"
    assert "id" in data
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_register_signs_user_in(client: AsyncClient):
    """Test the new user is signed in through the session."""
    await client.post(
        "/api/v1/auth/register",
        json={"username": "newuser", "password": "securepassword123"},
    )
    
    response = await client.get("/api/v1/auth/me")
    
    assert response.status_code == 200
    assert response.json()["username"] == "newuser"
    assert response.json()["email"] is None


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    """Test registration with existing email fails."""
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": "anotheruser",
            "email": test_user.email,
            "full_name": "Another User",
            "password": "password123",
        },
    )
    
    assert response.status_code == 400
    assert "already registered" in response.json()["detail"]


@pytest.mark.asyncio
async def test_register_duplicate_username(client: AsyncClient, test_user):
    """Test registration with existing username fails."""
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "username": test_user.username,
            "password": "password123",
        },
    )
    
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user):
    """Test successful login."""
    response = await client.post(
        "/api/v1/auth/login",
        json={
            "login": test_user.username,
            "password": "testpassword123",
        },
    )
    
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_with_email(client: AsyncClient, test_user):
    """Test login accepts the email address too."""
    response = await client.post(
        "/api/v1/auth/login",
        json={
            "login": test_user.email,
            "password": "testpassword123",
        },
    )
    
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_invalid_password(client: AsyncClient, test_user):
    """Test login with wrong password fails."""
    response = await client.post(
        "/api/v1/auth/login",
        json={
            "login": test_user.username,
            "password": "wrongpassword",
        },
    )
    
    assert response.status_code == 401
    assert "Invalid login or password" in response.json()["detail"]


@pytest.mark.asyncio
async def test_get_current_user(client: AsyncClient, auth_headers):
    """Test getting current user profile."""
    response = await client.get(
        "/api/v1/auth/me",
        headers=auth_headers,
    )
    
    assert response.status_code == 200
    data = response.json()
    assert data["email"] == "test@example.com"


@pytest.mark.asyncio
async def test_get_current_user_unauthorized(client: AsyncClient):
    """Test accessing protected endpoint without auth fails."""
    response = await client.get("/api/v1/auth/me")
    
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_bearer_token(client: AsyncClient):
    response = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": "Bearer not-a-token"},
    )
    
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_session_login_and_logout(client: AsyncClient, test_user):
    """Test login signs the browser session in and logout clears it."""
    await client.post(
        "/api/v1/auth/login",
        json={"login": test_user.username, "password": "testpassword123"},
    )
    
    assert (await client.get("/api/v1/auth/me")).status_code == 200
    
    response = await client.post("/api/v1/auth/logout")
    
    assert response.status_code == 204
    assert (await client.get("/api/v1/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_refresh_token(client: AsyncClient, test_user):
    """Test token refresh."""
    # First login to get tokens
    login_response = await client.post(
        "/api/v1/auth/login",
        json={
            "login": test_user.username,
            "password": "testpassword123",
        },
    )
    
    refresh_token = login_response.json()["refresh_token"]
    
    # Refresh tokens
    response = await client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": refresh_token},
    )
    
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert "refresh_token" in data


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client: AsyncClient, test_user):
    login_response = await client.post(
        "/api/v1/auth/login",
        json={"login": test_user.username, "password": "testpassword123"},
    )
    
    response = await client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": login_response.json()["access_token"]},
    )
    
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_completes_pending_sign_in(client: AsyncClient):
    """Test a provider account that failed to sign in is connected on sign-up."""
    first_leg = await client.get("/api/v1/signin/stub2")
    state = parse_qs(urlsplit(first_leg.headers["location"]).query)["state"][0]
    callback = await client.get("/api/v1/signin/stub2", params={"code": "code-9", "state": state})
    assert callback.status_code == 303
    assert callback.headers["location"] == "/signup"
    
    attempts = (await client.get("/api/v1/signin/attempts")).json()
    assert [(a["provider_id"], a["provider_user_id"]) for a in attempts] == [("stub2", "9")]
    
    response = await client.post(
        "/api/v1/auth/register",
        json={"username": "keith", "password": "securepassword123"},
    )
    assert response.status_code == 201
    
    status_response = await client.get("/api/v1/connect/stub2")
    data = status_response.json()
    assert data["connected"] is True
    assert data["connections"][0]["provider_user_id"] == "9"
    assert data["connections"][0]["display_name"] == "Keith Donald"
    assert (await client.get("/api/v1/signin/attempts")).json() == []
