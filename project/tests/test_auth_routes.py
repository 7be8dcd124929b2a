# tests/test_auth_routes.py

from datetime import timedelta

from tianguistore.config import settings
from tianguistore.utils.security import create_access_token, decode_access_token


async def test_register_then_login(client):
    response = await client.post("/auth/register", json={
        "nombre": "Ana",
        "apellido_paterno": "López",
        "correo_electronico": "Ana@Example.com",
        "contrasena": "secreto123",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["correo_electronico"] == "ana@example.com"
    assert body["rol"] == "cliente"
    assert "contrasena_hash" not in body

    login = await client.post("/auth/token", data={"username": "ana@example.com", "password": "secreto123"})
    assert login.status_code == 200
    data = login.json()
    assert data["token_type"] == "bearer"
    assert data["usuario"]["nombre"] == "Ana López"
    assert data["usuario"]["permisos"]["pedidos"] == {"cancelar": True, "crear": True}
    assert decode_access_token(data["access_token"])["sub"] == str(body["usuario_id"])


async def test_register_duplicate_email_is_409(client, factory):
    await factory.user(correo="repetido@example.com")

    response = await client.post("/auth/register", json={
        "nombre": "Otra", "correo_electronico": "repetido@example.com", "contrasena": "secreto123",
    })

    assert response.status_code == 409


async def test_login_with_wrong_password_or_inactive_user(client, factory):
    await factory.user(correo="activo@example.com")
    await factory.user(correo="baja@example.com", activo=False)

    wrong = await client.post("/auth/token", data={"username": "activo@example.com", "password": "mala"})
    inactive = await client.post("/auth/token", data={"username": "baja@example.com", "password": "secreto123"})

    assert wrong.status_code == 401
    assert inactive.status_code == 401


async def test_seeded_admin_can_log_in(client):
    response = await client.post(
        "/auth/token", data={"username": settings.AUTH_LOGIN, "password": settings.AUTH_PASSWORD}
    )

    assert response.status_code == 200
    assert response.json()["usuario"]["rol"] == "admin"


async def test_renew_issues_new_token(client, factory, auth):
    user = await factory.user()

    response = await client.post("/auth/renovar", headers=auth(user))

    assert response.status_code == 200
    assert response.json()["usuario"]["usuario_id"] == user.usuario_id
    assert decode_access_token(response.json()["token"])["sub"] == str(user.usuario_id)


async def test_expired_token_is_rejected(client, factory):
    user = await factory.user()
    token = create_access_token({"sub": str(user.usuario_id)}, expires_delta=timedelta(minutes=-1))

    response = await client.post("/auth/renovar", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token expirado"


async def test_token_of_deactivated_user_is_rejected(client, factory, auth, session):
    user = await factory.user()
    headers = auth(user)
    user.activo = False
    await session.commit()

    response = await client.post("/pedidos/mis", headers=headers)

    assert response.status_code == 401
