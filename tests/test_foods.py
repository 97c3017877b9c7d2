"""
Tests for food listing endpoints.
"""
from sqlalchemy.exc import SQLAlchemyError

from fooddiscover.models.food import Food

from conftest import JPEG_BYTES, WEBP_BYTES, bearer, image_files


def create_food(client, headers, form, files):
    return client.post("/api/foods", headers=headers, data=form, files=files)


class TestCreateFood:
    """Test the listing creation pipeline."""

    def test_create_food(self, client, db, test_user, auth_headers, food_form, upload_dir):
        files = image_files(1) + [("images", ("side.jpg", JPEG_BYTES, "image/jpeg"))]
        response = create_food(client, auth_headers, food_form, files)
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        food = data["food"]
        assert food["title"] == "Masala Dosa"
        assert food["price"] == 120
        assert food["priceRange"] == "₹₹"
        assert food["tags"] == ["breakfast", "crispy", "vegetarian"]
        assert food["dietary"] == {
            "vegetarian": True,
            "vegan": False,
            "glutenfree": False,
            "halal": False,
            "kosher": False,
        }
        assert food["nutrition"] == {"calories": 350}
        assert food["createdBy"] == test_user.id

        assert len(food["images"]) == 2
        assert food["images"][0].startswith("/uploads/")
        assert food["images"][0].endswith("_0_dish.png")
        assert food["images"][1].endswith("_side.jpg")
        for path in food["images"]:
            assert (upload_dir / path.rsplit("/", 1)[1]).is_file()

    def test_uploaded_image_is_served(self, client, auth_headers, food_form):
        response = create_food(client, auth_headers, food_form, image_files(1))
        path = response.json()["food"]["images"][0]
        served = client.get(path)
        assert served.status_code == 200
        assert served.content.startswith(b"\x89PNG")

    def test_requires_auth(self, client, food_form, upload_dir):
        response = create_food(client, {}, food_form, image_files(1))
        assert response.status_code == 401
        assert list(upload_dir.iterdir()) == []

    def test_missing_fields_in_order(self, client, auth_headers, food_form):
        expected = [
            ("title", "Title is required"),
            ("description", "Description is required"),
            ("cuisineType", "Cuisine type is required"),
            ("vendorName", "Vendor name is required"),
            ("address", "Address is required"),
            ("city", "City is required"),
            ("price", "Valid price is required"),
        ]
        # Blank every required field, then restore them one at a time
        form = {**food_form, **{field: "   " for field, _ in expected}}
        for field, message in expected:
            response = create_food(client, auth_headers, form, image_files(1))
            assert response.status_code == 400
            assert response.json()["message"] == message
            form[field] = food_form[field]

    def test_no_images(self, client, auth_headers, food_form):
        response = client.post("/api/foods", headers=auth_headers, data=food_form)
        assert response.status_code == 400
        assert response.json()["message"] == "At least one image is required"

    def test_title_checked_before_images(self, client, auth_headers, food_form):
        form = {**food_form, "title": ""}
        response = client.post("/api/foods", headers=auth_headers, data=form)
        assert response.json()["message"] == "Title is required"

    def test_too_many_images_rejected_before_fields(self, client, auth_headers, food_form, upload_dir):
        form = {**food_form, "title": ""}
        response = create_food(client, auth_headers, form, image_files(6))
        assert response.status_code == 400
        assert response.json()["message"] == "Too many files. Maximum is 5 files."
        assert list(upload_dir.iterdir()) == []

    def test_negative_price(self, client, auth_headers, food_form):
        response = create_food(client, auth_headers, {**food_form, "price": "-5"}, image_files(1))
        assert response.status_code == 400
        assert response.json()["message"] == "Valid price is required"

    def test_non_numeric_price(self, client, auth_headers, food_form):
        response = create_food(client, auth_headers, {**food_form, "price": "cheap"}, image_files(1))
        assert response.json()["message"] == "Valid price is required"

    def test_digit_separators_in_price_rejected(self, client, db, auth_headers, food_form):
        response = create_food(client, auth_headers, {**food_form, "price": "1_000"}, image_files(1))
        assert response.status_code == 400
        assert response.json()["message"] == "Valid price is required"
        assert db.query(Food).count() == 0

    def test_unknown_price_range_defaults(self, client, auth_headers, food_form):
        form = {**food_form, "price": "20", "priceRange": "X"}
        response = create_food(client, auth_headers, form, image_files(1))
        assert response.status_code == 201
        assert response.json()["food"]["priceRange"] == "₹₹"
        assert response.json()["food"]["price"] == 20

    def test_repeated_tag_fields(self, client, auth_headers, food_form):
        form = {**food_form, "tags": [" spicy ", "", "street"]}
        response = create_food(client, auth_headers, form, image_files(1))
        assert response.json()["food"]["tags"] == ["spicy", "street"]

    def test_negative_nutrition_rejected(self, client, db, auth_headers, food_form):
        form = {**food_form, "protein": "-1"}
        response = create_food(client, auth_headers, form, image_files(1))
        assert response.status_code == 400
        assert response.json()["errors"] == ["Protein cannot be negative"]
        assert db.query(Food).count() == 0

    def test_disguised_file_rejected(self, client, auth_headers, food_form, upload_dir):
        files = [("images", ("evil.png", b"<?php echo 'hi'; ?>", "image/png"))]
        response = create_food(client, auth_headers, food_form, files)
        assert response.status_code == 400
        assert response.json()["message"] == "Upload error: Only JPEG, PNG, WEBP images are allowed"
        assert list(upload_dir.iterdir()) == []

    def test_webp_accepted_despite_declared_type(self, client, auth_headers, food_form):
        files = [("images", ("photo", WEBP_BYTES, "application/octet-stream"))]
        response = create_food(client, auth_headers, food_form, files)
        assert response.status_code == 201
        assert response.json()["food"]["images"][0].endswith("_photo.webp")

    def test_unexpected_field_name(self, client, auth_headers, food_form):
        files = [("photo", ("dish.png", b"\x89PNG\r\n\x1a\n", "image/png"))]
        response = create_food(client, auth_headers, food_form, files)
        assert response.status_code == 400
        assert response.json()["message"] == "Unexpected field name for file upload."

    def test_file_too_large(self, client, auth_headers, food_form, upload_dir):
        big = b"\x89PNG\r\n\x1a\n" + b"\x00" * (5 * 1024 * 1024)
        files = image_files(1) + [("images", ("big.png", big, "image/png"))]
        response = create_food(client, auth_headers, food_form, files)
        assert response.status_code == 400
        assert response.json()["message"] == "File too large. Maximum size is 5MB."
        assert list(upload_dir.iterdir()) == []

    def test_malformed_multipart_body(self, client, auth_headers, upload_dir):
        headers = {**auth_headers, "Content-Type": "multipart/form-data"}
        response = client.post("/api/foods", headers=headers, content=b"--x\r\nnot a form\r\n")
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"].startswith("File upload error:")
        assert list(upload_dir.iterdir()) == []

    def test_failed_insert_leaves_no_files(self, client, db, auth_headers, food_form, upload_dir, monkeypatch):
        def broken_commit():
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(db, "commit", broken_commit)
        response = create_food(client, auth_headers, food_form, image_files(3))
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Server error. Please try again later."}
        assert list(upload_dir.iterdir()) == []


class TestListFoods:
    """Test the public listing feed."""

    def test_list_foods_latest_first(self, client, auth_headers, food_form):
        for title in ("First", "Second", "Third"):
            create_food(client, auth_headers, {**food_form, "title": title}, image_files(1))

        response = client.get("/api/foods")
        assert response.status_code == 200
        titles = [f["title"] for f in response.json()["foods"]]
        assert titles == ["Third", "Second", "First"]

    def test_list_foods_empty(self, client):
        response = client.get("/api/foods")
        assert response.json() == {"success": True, "foods": []}


class TestDeleteFood:
    """Test owner-only deletion."""

    def test_delete_as_owner(self, client, db, auth_headers, food_form, upload_dir):
        created = create_food(client, auth_headers, food_form, image_files(2)).json()["food"]

        response = client.delete(f"/api/foods/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Food item deleted successfully"

        listed = client.get("/api/foods").json()["foods"]
        assert created["id"] not in [f["id"] for f in listed]
        assert list(upload_dir.iterdir()) == []

    def test_delete_as_non_owner(self, client, db, auth_headers, other_user, food_form):
        created = create_food(client, auth_headers, food_form, image_files(1)).json()["food"]

        response = client.delete(f"/api/foods/{created['id']}", headers=bearer(other_user))
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to delete this food item"

        food = db.query(Food).filter(Food.id == created["id"]).first()
        assert food is not None
        assert food.title == created["title"]

    def test_delete_missing(self, client, auth_headers):
        response = client.delete("/api/foods/4242", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Food item not found"

    def test_delete_requires_auth(self, client):
        assert client.delete("/api/foods/1").status_code == 401
