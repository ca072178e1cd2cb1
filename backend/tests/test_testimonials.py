import pytest

from models.contact import ContactMessage
from models.notification import AdminNotification
from models.testimonial import Testimonial, TestimonialStatus


def _submit(client, headers, rating=5, message="Fast shipping, great shoes"):
    return client.post("/testimonials", json={"rating": rating, "message": message}, headers=headers)


# ---- testimonials ----

def test_submission_waits_for_moderation(client, db, customer_headers):
    response = _submit(client, customer_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["user_name"] == "Test Customer"
    assert client.get("/testimonials").json()["data"] == []

    notification = db.query(AdminNotification).one()
    assert notification.type == "testimonial_submitted"
    assert notification.data["testimonial_id"] == data["id"]


def test_submission_requires_login(client):
    assert _submit(client, {}).status_code in (401, 403)


@pytest.mark.parametrize("payload,field", [
    ({"rating": 0, "message": "ok"}, "rating"),
    ({"rating": 6, "message": "ok"}, "rating"),
    ({"rating": 4, "message": "   "}, "message"),
    ({"rating": 4, "message": "x" * 1001}, "message"),
])
def test_submission_validation(client, customer_headers, payload, field):
    response = client.post("/testimonials", json=payload, headers=customer_headers)
    assert response.status_code == 422
    assert field in response.json()["errors"]


def test_moderation_controls_storefront_listing(client, customer_headers, other_headers, admin_headers):
    kept = _submit(client, customer_headers, message="Loved it").json()["data"]
    dropped = _submit(client, other_headers, rating=1, message="Spam").json()["data"]

    approved = client.patch(f"/admin/testimonials/{kept['id']}/approve", headers=admin_headers)
    rejected = client.patch(f"/admin/testimonials/{dropped['id']}/reject", headers=admin_headers)

    assert approved.json()["data"]["status"] == "approved"
    assert rejected.json()["data"]["status"] == "rejected"
    public = client.get("/testimonials").json()["data"]
    assert [t["message"] for t in public] == ["Loved it"]

    everything = client.get("/admin/testimonials", headers=admin_headers).json()["data"]
    assert {t["status"] for t in everything} == {"approved", "rejected"}
    only_rejected = client.get("/admin/testimonials", params={"status": "rejected"}, headers=admin_headers).json()["data"]
    assert [t["id"] for t in only_rejected] == [dropped["id"]]


def test_storefront_shows_latest_twelve(client, db, customer):
    for index in range(15):
        db.add(Testimonial(user_id=customer.id, rating=5, message=f"Note {index}", status=TestimonialStatus.APPROVED))
    db.commit()

    public = client.get("/testimonials").json()["data"]

    assert len(public) == 12
    assert public[0]["message"] == "Note 14"


def test_moderation_is_admin_only(client, customer_headers):
    testimonial = _submit(client, customer_headers).json()["data"]

    assert client.get("/admin/testimonials", headers=customer_headers).status_code == 403
    assert client.patch(f"/admin/testimonials/{testimonial['id']}/approve", headers=customer_headers).status_code == 403


def test_moderating_missing_testimonial(client, admin_headers):
    response = client.patch("/admin/testimonials/77/approve", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Testimonial not found"


# ---- contact form ----

def test_contact_message_is_stored_and_notified(client, db):
    response = client.post("/contact-messages", json={
        "name": "Ann", "email": "ann@example.com", "subject": "Sizing", "message": "Do you stock size 47?",
    })

    assert response.status_code == 201
    assert response.json() == {"success": True, "data": None, "message": "Your message has been sent successfully!"}
    stored = db.query(ContactMessage).one()
    assert stored.subject == "Sizing"
    notification = db.query(AdminNotification).one()
    assert notification.type == "contact_message"
    assert notification.data == {"contact_message_id": stored.id}


def test_contact_message_validation(client, db):
    response = client.post("/contact-messages", json={
        "name": "", "email": "not-an-email", "subject": "Hi", "message": "Hello",
    })

    assert response.status_code == 422
    errors = response.json()["errors"]
    assert "name" in errors
    assert "email" in errors
    assert db.query(ContactMessage).count() == 0
