import json

import pytest
from fastapi import HTTPException

from cleanbins.domain.articles.router import get_article_store
from cleanbins.domain.articles.service import ArticleStore
from cleanbins.main import app


def write_article(directory, name, article, bom=False):
    text = json.dumps(article, ensure_ascii=False)
    (directory / name).write_text(("\ufeff" if bom else "") + text, encoding="utf-8")


@pytest.fixture
def articles_dir(tmp_path):
    root = tmp_path / "articles"
    (root / "img").mkdir(parents=True)
    write_article(
        root,
        "old.json",
        {"title": "Ancien", "slug": "ancien", "date": "2029-01-10", "content": "<p>...</p>", "titleEn": "Old"},
    )
    write_article(root, "new.json", {"title": "Récent", "slug": "recent", "date": "2030-02-01", "content": "x"}, bom=True)
    write_article(root, "draft.json", {"title": "Brouillon", "slug": "brouillon", "published": False})
    (root / "broken.json").write_text("{not json", encoding="utf-8")
    (root / "notes.txt").write_text("ignored", encoding="utf-8")
    (root / "img" / "bac.png").write_bytes(b"\x89PNG fake")
    return root


@pytest.fixture
def article_client(client, articles_dir):
    app.dependency_overrides[get_article_store] = lambda: ArticleStore(str(articles_dir))
    return client


def test_listing_is_published_only_newest_first(article_client):
    articles = article_client.get("/api/articles").json()["articles"]

    assert [a["slug"] for a in articles] == ["recent", "ancien"]
    assert "content" not in articles[0]
    assert articles[1]["titleEn"] == "Old"
    assert "titleEn" not in articles[0]
    assert articles[0]["id"] == "new"


def test_article_by_slug_includes_content(article_client):
    article = article_client.get("/api/articles/recent").json()["article"]
    assert article["content"] == "x"
    assert article["id"] == "new"


def test_unknown_slug(article_client):
    response = article_client.get("/api/articles/inconnu")
    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "Article not found"}


def test_image_is_served_with_long_cache(article_client):
    response = article_client.get("/api/articles/images/bac.png")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "public, max-age=31536000"
    assert response.content == b"\x89PNG fake"


def test_missing_image(article_client):
    assert article_client.get("/api/articles/images/absent.jpg").status_code == 404


def test_missing_directory_lists_nothing(tmp_path):
    assert ArticleStore(str(tmp_path / "nowhere")).list_articles() == []


def test_image_outside_directory_is_refused(articles_dir):
    (articles_dir / "secret.png").write_bytes(b"secret")
    store = ArticleStore(str(articles_dir))

    with pytest.raises(HTTPException) as excinfo:
        store.read_image("../secret.png")
    assert excinfo.value.status_code == 403
