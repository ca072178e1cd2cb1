from pathlib import Path

from models.cart import CartItem
from models.category import Category
from models.order import OrderItem
from models.product import Product, ProductImage, ProductReview

PNG = b"\x89PNG\r\n\x1a\nfake"


def _primary_flags(product):
    return [image["is_primary"] for image in product["images"]]


def _create(client, admin_headers, category, **overrides):
    payload = {"name": "Boot", "price": "40.00", "category_id": category.id, "stock_quantity": 3}
    payload.update(overrides)
    return client.post("/products", json=payload, headers=admin_headers)


# ---- categories ----

def test_category_crud(client, admin_headers):
    created = client.post("/categories", json={"name": "Hats", "description": "Head wear"}, headers=admin_headers)
    assert created.status_code == 201
    category_id = created.json()["data"]["id"]

    updated = client.put(f"/categories/{category_id}", json={"name": "Caps"}, headers=admin_headers)
    assert updated.json()["data"]["name"] == "Caps"

    listed = client.get("/categories").json()["data"]
    assert [c["name"] for c in listed] == ["Caps"]

    assert client.delete(f"/categories/{category_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/categories/{category_id}").status_code == 404


def test_category_names_are_unique(client, admin_headers, category):
    response = client.post("/categories", json={"name": "shoes"}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["errors"] == {"name": ["The name has already been taken."]}


def test_category_with_products_cannot_be_deleted(client, db, admin_headers, category, product):
    response = client.delete(f"/categories/{category.id}", headers=admin_headers)

    assert response.status_code == 422
    assert response.json()["message"] == "Cannot delete category with associated products"
    db.expire_all()
    assert db.get(Category, category.id) is not None
    assert db.get(Product, product.id) is not None


def test_category_detail_lists_products(client, category, product):
    data = client.get(f"/categories/{category.id}").json()["data"]
    assert [p["id"] for p in data["products"]] == [product.id]


def test_category_management_is_admin_only(client, customer_headers, category):
    assert client.post("/categories", json={"name": "X"}, headers=customer_headers).status_code == 403
    assert client.delete(f"/categories/{category.id}", headers=customer_headers).status_code == 403


def test_blank_category_name_rejected(client, db, admin_headers, category):
    for name in ("   ", "\t\n"):
        response = client.post("/categories", json={"name": name}, headers=admin_headers)
        assert response.status_code == 422
        assert "name" in response.json()["errors"]

    response = client.put(f"/categories/{category.id}", json={"name": "  "}, headers=admin_headers)
    assert response.status_code == 422
    assert db.query(Category).count() == 1

    created = client.post("/categories", json={"name": "  Hats  "}, headers=admin_headers).json()["data"]
    assert created["name"] == "Hats"


# ---- product create / update ----

def test_first_image_becomes_primary_by_default(client, admin_headers, category):
    response = _create(client, admin_headers, category, images=[{"url": "/a.jpg"}, {"url": "/b.jpg"}, {"url": "/c.jpg"}])

    assert response.status_code == 201
    assert _primary_flags(response.json()["data"]) == [True, False, False]


def test_only_first_designated_primary_wins(client, admin_headers, category):
    response = _create(client, admin_headers, category, images=[
        {"url": "/a.jpg"},
        {"url": "/b.jpg", "is_primary": True},
        {"url": "/c.jpg", "is_primary": True},
    ])
    assert _primary_flags(response.json()["data"]) == [False, True, False]


def test_product_without_images(client, admin_headers, category):
    data = _create(client, admin_headers, category).json()["data"]
    assert data["images"] == []
    assert data["price"] == 40.0
    assert data["category"]["name"] == "Shoes"


def test_discount_must_be_below_price(client, admin_headers, category, product):
    response = _create(client, admin_headers, category, discount_price="40.00")
    assert response.status_code == 422
    assert "discount_price" in response.json()["errors"]

    response = client.put(f"/products/{product.id}", json={"discount_price": "12.00"}, headers=admin_headers)
    assert response.status_code == 422


def test_product_needs_existing_category(client, admin_headers, category):
    response = _create(client, admin_headers, category, category_id=999)
    assert response.status_code == 422
    assert "category_id" in response.json()["errors"]


def test_update_adds_designated_primary(client, admin_headers, product):
    response = client.put(f"/products/{product.id}", json={
        "name": "Runner",
        "images": [{"url": "/new.jpg", "is_primary": True}],
    }, headers=admin_headers)

    data = response.json()["data"]
    assert data["name"] == "Runner"
    assert [(i["url"], i["is_primary"]) for i in data["images"]] == [
        ("/uploads/products/a.jpg", False), ("/new.jpg", True),
    ]


def test_update_cannot_strip_every_image(client, admin_headers, make_product):
    product = make_product(image_urls=("/1.jpg", "/2.jpg"))
    ids = [image.id for image in product.images]

    response = client.put(f"/products/{product.id}", json={"deleted_image_ids": ids}, headers=admin_headers)

    assert response.status_code == 422
    assert response.json()["message"] == "Cannot delete all images. A product must have at least one image."


def test_update_can_swap_all_images(client, admin_headers, make_product):
    product = make_product(image_urls=("/1.jpg", "/2.jpg"))
    ids = [image.id for image in product.images]

    response = client.put(f"/products/{product.id}", json={
        "deleted_image_ids": ids, "images": [{"url": "/3.jpg"}],
    }, headers=admin_headers)

    assert response.status_code == 200
    assert [(i["url"], i["is_primary"]) for i in response.json()["data"]["images"]] == [("/3.jpg", True)]


def test_deleting_primary_promotes_remaining(client, admin_headers, make_product):
    product = make_product(image_urls=("/1.jpg", "/2.jpg", "/3.jpg"))
    first_id = product.images[0].id

    data = client.put(f"/products/{product.id}", json={"deleted_image_ids": [first_id]},
                      headers=admin_headers).json()["data"]

    assert [(i["url"], i["is_primary"]) for i in data["images"]] == [("/2.jpg", True), ("/3.jpg", False)]


def test_update_rejects_foreign_image_ids(client, admin_headers, make_product):
    mine = make_product(name="Mine")
    theirs = make_product(name="Theirs")
    foreign_id = theirs.images[0].id

    response = client.put(f"/products/{mine.id}", json={"deleted_image_ids": [foreign_id]}, headers=admin_headers)
    assert response.status_code == 422

    response = client.put(f"/products/{mine.id}", json={"images": [{"id": foreign_id, "is_primary": True}]},
                          headers=admin_headers)
    assert response.status_code == 422


def test_product_management_is_admin_only(client, customer_headers, category, product):
    assert _create(client, customer_headers, category).status_code == 403
    assert client.delete(f"/products/{product.id}", headers=customer_headers).status_code == 403


# ---- delete ----

def test_delete_product_cleans_up_references(client, db, admin_headers, customer, customer_headers, place_order, product, storage):
    with open(__file__, "rb") as stream:
        stored = storage.store(stream, "pic.png")
    db.add(ProductImage(product_id=product.id, url=stored, is_primary=False))
    db.add(ProductReview(product_id=product.id, user_id=customer.id, name="Jane", rating=4, comment="Nice"))
    db.commit()
    order = place_order([{"product_id": product.id, "quantity": 2}])
    client.post("/cart/items", json={"product_id": product.id, "quantity": 1}, headers=customer_headers)
    product_id = product.id

    response = client.delete(f"/products/{product_id}", headers=admin_headers)

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Product, product_id) is None
    assert db.query(ProductImage).count() == 0
    assert db.query(ProductReview).count() == 0
    assert db.query(CartItem).count() == 0
    line = db.query(OrderItem).one()
    assert line.product_id is None
    assert client.get(f"/orders/{order['id']}", headers=customer_headers).json()["data"]["total_amount"] == 20.0
    assert not list(Path(storage.root).rglob("*.png"))


# ---- listing and search ----

def test_list_filters_and_pagination(client, make_product):
    make_product(name="Red sneaker", price="30.00")
    make_product(name="Blue boot", price="80.00")
    make_product(name="Old sandal", price="15.00", is_active=False)

    def names(**params):
        data = client.get("/products", params=params).json()["data"]
        return [p["name"] for p in data["items"]]

    assert names(q="sneaker") == ["Red sneaker"]
    assert names(q="BOOT description") == ["Blue boot"]
    assert names(min_price="20", max_price="50") == ["Red sneaker"]
    assert names(is_active="false") == ["Old sandal"]

    page = client.get("/products", params={"page": 2, "page_size": 2}).json()["data"]
    assert page["total"] == 3
    assert page["page"] == 2
    assert [p["name"] for p in page["items"]] == ["Old sandal"]


def test_search_is_unpaginated(client, make_product):
    for index in range(20):
        make_product(name=f"Sock {index}")
    response = client.get("/products/search", params={"q": "sock"})
    assert response.status_code == 200
    assert len(response.json()["data"]) == 20


def test_missing_product(client):
    response = client.get("/products/4040")
    assert response.status_code == 404
    assert response.json()["message"] == "Product not found"


def test_featured_products(client, db, make_product):
    featured = make_product(name="Deal", price="50.00", discount_price="35.00", image_urls=("/x.jpg", "/y.jpg"))
    make_product(name="Full price", price="50.00")
    make_product(name="Sold out deal", price="50.00", discount_price="20.00", stock_quantity=0)
    make_product(name="Hidden deal", price="50.00", discount_price="20.00", is_active=False)
    # Primary flag on the second image: featured listing puts it first
    featured.images[0].is_primary = False
    featured.images[1].is_primary = True
    db.commit()

    data = client.get("/featured-products").json()["data"]

    assert [p["name"] for p in data] == ["Deal"]
    assert data[0]["images"][0]["url"] == "/y.jpg"


def test_featured_products_capped_at_eight(client, make_product):
    for index in range(10):
        make_product(name=f"Deal {index}", price="20.00", discount_price="10.00")
    assert len(client.get("/featured-products").json()["data"]) == 8


def test_latest_products_are_active_and_capped(client, make_product):
    for index in range(14):
        make_product(name=f"New {index}")
    make_product(name="Inactive", is_active=False)

    data = client.get("/latest-products").json()["data"]

    assert len(data) == 12
    assert "Inactive" not in [p["name"] for p in data]
    assert data[0]["name"] == "New 13"


# ---- media ----

def test_upload_images_with_primary_index(client, admin_headers, product, storage):
    response = client.post(
        f"/products/{product.id}/images",
        files=[
            ("images_files", ("one.png", PNG, "image/png")),
            ("images_files", ("two.png", PNG, "image/png")),
        ],
        data={"primary_index": "1"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    images = response.json()["data"]["images"]
    assert _primary_flags(response.json()["data"]) == [False, False, True]
    for image in images[1:]:
        assert image["url"].startswith("/uploads/products/")
        assert Path(storage.root, image["url"][len("/uploads/"):]).exists()


def test_upload_keeps_existing_primary_without_index(client, admin_headers, product):
    response = client.post(
        f"/products/{product.id}/images",
        files=[("images_files", ("one.png", PNG, "image/png"))],
        headers=admin_headers,
    )
    assert _primary_flags(response.json()["data"]) == [True, False]


def test_upload_rejects_non_images(client, admin_headers, product):
    response = client.post(
        f"/products/{product.id}/images",
        files=[("images_files", ("notes.txt", b"hello", "text/plain"))],
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert "images_files" in response.json()["errors"]


def test_replace_image_keeps_primary_flag(client, admin_headers, product, storage):
    image_id = product.images[0].id

    response = client.put(
        f"/products/{product.id}/images/{image_id}",
        files={"image": ("new.png", PNG, "image/png")},
        headers=admin_headers,
    )

    image = response.json()["data"]["images"][0]
    assert image["id"] == image_id
    assert image["is_primary"] is True
    assert image["url"] != "/uploads/products/a.jpg"


def test_delete_last_image_rejected(client, admin_headers, product):
    image_id = product.images[0].id
    response = client.delete(f"/products/{product.id}/images/{image_id}", headers=admin_headers)
    assert response.status_code == 422


def test_delete_image_moves_primary(client, admin_headers, make_product):
    product = make_product(image_urls=("/1.jpg", "/2.jpg"))
    response = client.delete(f"/products/{product.id}/images/{product.images[0].id}", headers=admin_headers)
    assert [(i["url"], i["is_primary"]) for i in response.json()["data"]["images"]] == [("/2.jpg", True)]


def test_video_upload(client, admin_headers, product):
    response = client.post(
        f"/products/{product.id}/video",
        files={"video": ("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["video_url"].startswith("/uploads/product_videos/")

    response = client.post(
        f"/products/{product.id}/video",
        files={"video": ("clip.png", PNG, "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 422
