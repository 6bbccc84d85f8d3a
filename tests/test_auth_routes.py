from src.domain.models.entities.user import User

ALICE = {"username": "alice", "email": "alice@example.com", "password": "Secret123!"}


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _load_user(db_session_factory, username: str) -> User:
    from sqlalchemy import select

    async with db_session_factory() as session:
        return (await session.scalars(select(User).where(User.username == username))).one()


async def _register(client, payload=ALICE) -> dict:
    resp = await client.post("/register", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _login(client, username="alice", password="Secret123!"):
    return await client.post("/login", json={"username": username, "password": password})


# ── registration ────────────────────────────────────────────────────


class TestRegister:
    async def test_returns_user_and_token(self, client):
        body = await _register(client)
        assert body["token"]
        assert body["user"]["username"] == "alice"
        assert body["user"]["email"] == "alice@example.com"

    async def test_response_is_redacted(self, client):
        body = await _register(client)
        for field in ("password", "password_hash", "tokens", "sub"):
            assert field not in body["user"]

    async def test_password_is_hashed(self, client, db_session_factory, hasher):
        await _register(client)
        user = await _load_user(db_session_factory, "alice")
        assert user.password_hash != ALICE["password"]
        assert await hasher.verify(ALICE["password"], user.password_hash)

    async def test_sends_welcome_email(self, client, mailer):
        await _register(client)
        assert len(mailer.sent) == 1
        to, subject, body = mailer.sent[0]
        assert to == "alice@example.com"
        assert "alice" in body

    async def test_duplicate_username_conflict(self, client, db_session_factory):
        await _register(client)
        resp = await client.post(
            "/register", json={**ALICE, "email": "other@example.com"}
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "User already exists"

    async def test_duplicate_email_conflict_has_same_message(self, client):
        await _register(client)
        resp = await client.post("/register", json={**ALICE, "username": "alice2"})
        assert resp.status_code == 409
        assert resp.json()["detail"] == "User already exists"

    async def test_conflict_writes_nothing(self, client, db_session_factory):
        from sqlalchemy import func, select

        await _register(client)
        await client.post("/register", json={**ALICE, "email": "other@example.com"})

        async with db_session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(User))
        assert count == 1

    async def test_short_password_rejected(self, client):
        resp = await client.post("/register", json={**ALICE, "password": "short"})
        assert resp.status_code == 422

    async def test_password_over_bcrypt_limit_rejected(self, client):
        resp = await client.post("/register", json={**ALICE, "password": "é" * 40})
        assert resp.status_code == 422


# ── login ───────────────────────────────────────────────────────────


class TestLogin:
    async def test_login_issues_distinct_token(self, client):
        registered = await _register(client)
        resp = await _login(client)
        assert resp.status_code == 200
        assert resp.json()["token"] != registered["token"]

    async def test_both_tokens_pass_middleware(self, client):
        registered = await _register(client)
        logged_in = (await _login(client)).json()

        for token in (registered["token"], logged_in["token"]):
            resp = await client.get("/users/me", headers=_bearer(token))
            assert resp.status_code == 200
            assert resp.json()["username"] == "alice"

    async def test_wrong_password(self, client, db_session_factory):
        await _register(client)
        before = (await _load_user(db_session_factory, "alice")).tokens

        resp = await _login(client, password="Wrong123!")

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid username or password"
        assert (await _load_user(db_session_factory, "alice")).tokens == before

    async def test_unknown_user_same_error(self, client):
        resp = await _login(client, username="nobody")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid username or password"


# ── logout ──────────────────────────────────────────────────────────


class TestLogout:
    async def test_logout_revokes_only_presenting_token(self, client, db_session_factory):
        await _register(client)
        # Start from a clean slate so exactly two logins are counted.
        first_reg = await _load_user(db_session_factory, "alice")
        await client.post("/logout", headers=_bearer(first_reg.tokens[0]))

        first = (await _login(client)).json()["token"]
        second = (await _login(client)).json()["token"]
        assert (await _load_user(db_session_factory, "alice")).tokens == [first, second]

        resp = await client.post("/logout", headers=_bearer(second))
        assert resp.status_code == 200

        assert (await _load_user(db_session_factory, "alice")).tokens == [first]
        assert (await client.get("/users/me", headers=_bearer(first))).status_code == 200

    async def test_logged_out_token_is_session_terminated(self, client):
        token = (await _register(client))["token"]
        await client.post("/logout", headers=_bearer(token))

        resp = await client.get("/users/me", headers=_bearer(token))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Session terminated. Please log in again."

    async def test_logout_all(self, client, db_session_factory):
        tokens = [(await _register(client))["token"]]
        tokens += [(await _login(client)).json()["token"] for _ in range(3)]

        resp = await client.post("/logout-all", headers=_bearer(tokens[-1]))
        assert resp.status_code == 200

        assert (await _load_user(db_session_factory, "alice")).tokens == []
        for token in tokens:
            resp = await client.get("/users/me", headers=_bearer(token))
            assert resp.status_code == 401

    async def test_logout_requires_auth(self, client):
        resp = await client.post("/logout")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Authorization header missing"


# ── middleware responses ────────────────────────────────────────────


class TestMiddlewareResponses:
    async def test_malformed_header(self, client):
        resp = await client.get("/users/me", headers={"Authorization": "Token abc"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid authorization format"

    async def test_invalid_token(self, client):
        resp = await client.get("/users/me", headers=_bearer("abc.def.ghi"))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    async def test_expired_token(self, client, db_session_factory, expired_token_service, sessions):
        await _register(client)
        user = await _load_user(db_session_factory, "alice")
        expired = expired_token_service.issue(user.id)
        async with db_session_factory() as session:
            stored = await session.get(User, user.id)
            stored.tokens = [*stored.tokens, expired]
            await session.commit()

        resp = await client.get("/users/me", headers=_bearer(expired))

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token expired"
        async with db_session_factory() as session:
            assert await sessions.is_active(session, user.id, expired) is False

    async def test_deleted_user(self, client, db_session_factory):
        token = (await _register(client))["token"]
        user = await _load_user(db_session_factory, "alice")
        async with db_session_factory() as session:
            await session.delete(await session.get(User, user.id))
            await session.commit()

        resp = await client.get("/users/me", headers=_bearer(token))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "User not found"

    async def test_public_paths_skip_auth(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["database"] == "connected"


# ── profile ─────────────────────────────────────────────────────────


class TestProfile:
    async def test_update_profile(self, client):
        token = (await _register(client))["token"]
        resp = await client.patch(
            "/users/me",
            json={"name": "Alice Liddell", "birthdate": "1990-05-04"},
            headers=_bearer(token),
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Alice Liddell"
        assert resp.json()["birthdate"] == "1990-05-04"

        resp = await client.get("/users/me", headers=_bearer(token))
        assert resp.json()["name"] == "Alice Liddell"
