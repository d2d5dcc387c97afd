"""Article store - Blog articles kept as JSON files on disk"""

import json
import logging
from datetime import datetime
from pathlib import Path

from fastapi import HTTPException

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}

# Fields returned by the listing; the full content is only served by slug
SUMMARY_FIELDS = (
    "title",
    "titleAr",
    "slug",
    "date",
    "author",
    "excerpt",
    "excerptAr",
    "image",
    "tags",
    "tagsAr",
)
OPTIONAL_SUMMARY_FIELDS = ("titleEn", "excerptEn", "tagsEn")


def _load_article(path: Path) -> dict:
    content = path.read_text(encoding="utf-8")
    if content.startswith("\ufeff"):
        content = content[1:]
    return json.loads(content.strip())


def _sort_key(article: dict) -> float:
    """Publication timestamp, 0 when the date is missing or unreadable"""
    value = article.get("date")
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(str(value)).timestamp()
    except ValueError:
        return 0.0


class ArticleStore:
    def __init__(self, articles_dir: str):
        self.root = Path(articles_dir)
        self.images = self.root / "img"

    def _files(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir() if p.suffix == ".json" and p.is_file())

    def list_articles(self) -> list[dict]:
        """Published articles without their content, newest first"""
        if not self.root.is_dir():
            logger.warning(f"⚠️ Articles directory does not exist: {self.root}")
            return []

        articles = []
        for path in self._files():
            try:
                article = _load_article(path)
            except (OSError, ValueError) as e:
                logger.error(f"❌ Error reading article {path.name}: {e}")
                continue

            if not isinstance(article, dict) or article.get("published") is False:
                continue

            summary = {"id": path.stem}
            for field in SUMMARY_FIELDS:
                summary[field] = article.get(field)
            summary["published"] = True
            for field in OPTIONAL_SUMMARY_FIELDS:
                if field in article:
                    summary[field] = article[field]
            articles.append(summary)

        articles.sort(key=_sort_key, reverse=True)
        logger.info(f"📊 Found {len(articles)} published articles")
        return articles

    def get_article(self, slug: str) -> dict:
        for path in self._files():
            try:
                article = _load_article(path)
            except (OSError, ValueError):
                continue
            if isinstance(article, dict) and article.get("slug") == slug:
                return {"id": path.stem, **article}

        raise HTTPException(status_code=404, detail="Article not found")

    def read_image(self, filename: str) -> tuple[bytes, str]:
        """Image bytes and content type; names escaping the image directory are refused"""
        image_path = (self.images / filename).resolve()
        if not image_path.is_relative_to(self.images.resolve()):
            logger.error(f"🚫 Image path outside the articles directory: {filename}")
            raise HTTPException(status_code=403, detail="Access denied")

        if not image_path.is_file():
            logger.warning(f"⚠️ Image not found: {image_path}")
            raise HTTPException(status_code=404, detail="Image not found")

        content_type = IMAGE_CONTENT_TYPES.get(image_path.suffix.lower(), "application/octet-stream")
        return image_path.read_bytes(), content_type
