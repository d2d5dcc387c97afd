"""Articles router - Public blog endpoints"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ...config import ARTICLES_DIR
from .service import ArticleStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/articles", tags=["Articles"])


def get_article_store() -> ArticleStore:
    """Dependency injection for ArticleStore"""
    return ArticleStore(ARTICLES_DIR)


@router.get("")
def list_articles(store: ArticleStore = Depends(get_article_store)):
    try:
        return {"ok": True, "articles": store.list_articles()}
    except Exception as e:
        logger.error(f"❌ Error listing articles: {e}")
        raise HTTPException(status_code=500, detail="Failed to list articles")


# Declared before /{slug} so image paths are not taken for slugs
@router.get("/images/{filename}")
def article_image(filename: str, store: ArticleStore = Depends(get_article_store)):
    content, content_type = store.read_image(filename)
    return Response(
        content=content,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=31536000"},
    )


@router.get("/{slug}")
def get_article(slug: str, store: ArticleStore = Depends(get_article_store)):
    return {"ok": True, "article": store.get_article(slug)}
