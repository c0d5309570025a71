import pytest
from httpx import AsyncClient

from vivaform_api.services.articles import slugify

pytestmark = pytest.mark.asyncio

CONTENT = "Protein keeps you full for longer and protects muscle while you lose weight."


@pytest.mark.parametrize(
    "title,slug",
    [
        ("Hello World", "hello-world"),
        ("  Protein: how much, really?  ", "protein-how-much-really"),
        ("Carbs -- friend or foe", "carbs-friend-or-foe"),
        ("Water 101", "water-101"),
    ],
)
def test_slugify(title, slug):
    assert slugify(title) == slug


async def create_article(client, headers, title, published=True, category="nutrition"):
    response = await client.post(
        "/api/v1/articles",
        json={"title": title, "content": CONTENT, "category": category, "tags": ["basics"], "published": published},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_requires_admin(client: AsyncClient, user_headers):
    response = await client.post(
        "/api/v1/articles", json={"title": "Nope", "content": CONTENT}, headers=user_headers
    )
    assert response.status_code == 403


async def test_publish_list_and_read(client: AsyncClient, admin_headers):
    published = await create_article(client, admin_headers, "Why Protein Matters")
    assert published["slug"] == "why-protein-matters"
    assert published["published_at"] is not None
    await create_article(client, admin_headers, "Draft Notes", published=False, category="drafts")

    public = (await client.get("/api/v1/articles")).json()
    assert [a["slug"] for a in public["articles"]] == ["why-protein-matters"]
    assert public["pagination"]["total"] == 1

    everything = (await client.get("/api/v1/articles/all", headers=admin_headers)).json()
    assert everything["pagination"]["total"] == 2

    assert (await client.get("/api/v1/articles/categories")).json() == ["nutrition"]

    first = await client.get("/api/v1/articles/why-protein-matters")
    assert first.status_code == 200
    assert first.json()["view_count"] == 1
    second = await client.get("/api/v1/articles/why-protein-matters")
    assert second.json()["view_count"] == 2


async def test_duplicate_slug_is_rejected(client: AsyncClient, admin_headers):
    await create_article(client, admin_headers, "Sleep and Hunger")
    response = await client.post(
        "/api/v1/articles", json={"title": "Sleep and Hunger!", "content": CONTENT}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Article with this slug already exists"


async def test_update_and_delete(client: AsyncClient, admin_headers):
    draft = await create_article(client, admin_headers, "Meal Prep Basics", published=False)

    updated = await client.patch(
        f"/api/v1/articles/{draft['id']}",
        json={"title": "Meal Prep for Beginners", "published": True},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["slug"] == "meal-prep-for-beginners"
    assert body["published"] is True
    assert body["published_at"] is not None

    assert (await client.delete(f"/api/v1/articles/{draft['id']}", headers=admin_headers)).status_code == 204
    assert (await client.get("/api/v1/articles/meal-prep-for-beginners")).status_code == 404
