# tests/test_cart_routes.py


async def test_empty_cart_has_no_total(client, auth, factory):
    user = await factory.user()

    response = await client.get("/carrito", headers=auth(user))

    assert response.status_code == 200
    assert response.json() == {"productos": [], "total": None}


async def test_adding_same_product_twice_merges_quantity(client, auth, factory):
    user = await factory.user()
    product = await factory.product("Cazuela", "80.00")

    first = await client.post("/carrito", json={"producto_id": product.producto_id, "cantidad": 1}, headers=auth(user))
    second = await client.post("/carrito", json={"producto_id": product.producto_id, "cantidad": 2}, headers=auth(user))
    cart = (await client.get("/carrito", headers=auth(user))).json()

    assert first.status_code == 201
    assert second.json()["cantidad"] == 3
    assert second.json()["subtotal"] == "240.00"
    assert cart["total"] == "240.00"
    assert len(cart["productos"]) == 1


async def test_add_unknown_product_or_bad_quantity(client, auth, factory):
    user = await factory.user()
    product = await factory.product()

    missing = await client.post("/carrito", json={"producto_id": 9999}, headers=auth(user))
    zero = await client.post("/carrito", json={"producto_id": product.producto_id, "cantidad": 0}, headers=auth(user))

    assert missing.status_code == 404
    assert zero.status_code == 422


async def test_remove_from_cart(client, auth, factory):
    user = await factory.user()
    product = await factory.product()
    await factory.cart(user, product, 2)

    removed = await client.delete(f"/carrito/{product.producto_id}", headers=auth(user))
    again = await client.delete(f"/carrito/{product.producto_id}", headers=auth(user))

    assert removed.status_code == 204
    assert again.status_code == 404
    assert (await client.get("/carrito", headers=auth(user))).json()["total"] is None


async def test_carts_are_per_user(client, auth, factory):
    user = await factory.user()
    other = await factory.user("Otro")
    product = await factory.product()
    await factory.cart(other, product, 5)

    response = await client.get("/carrito", headers=auth(user))

    assert response.json()["productos"] == []


async def test_support_role_has_no_cart(client, auth, factory):
    support = await factory.user("Soporte", rol="soporte")

    response = await client.get("/carrito", headers=auth(support))

    assert response.status_code == 403
