"""OpenAI embedding service for product vectors."""

import logging
from uuid import UUID

import tiktoken
from openai import AsyncOpenAI
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.base import EMBEDDING_DIMENSIONS
from app.models.product import Product
from app.services.translation_service import localized_text

logger = logging.getLogger(__name__)

# Constants
EMBEDDING_MODEL = "text-embedding-3-small"
MAX_INPUT_TOKENS = 8000

__all__ = ["EMBEDDING_DIMENSIONS", "EMBEDDING_MODEL", "EmbeddingService", "get_embedding_service"]


class EmbeddingService:
    """Service for generating embeddings using OpenAI."""

    def __init__(self) -> None:
        self.client = AsyncOpenAI(api_key=settings.openai_api_key)
        self._encoding: tiktoken.Encoding | None = None

    @property
    def encoding(self) -> tiktoken.Encoding:
        """Lazy-load the tiktoken encoding."""
        if self._encoding is None:
            self._encoding = tiktoken.encoding_for_model(EMBEDDING_MODEL)
        return self._encoding

    async def generate_embedding(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: The text to embed

        Returns:
            List of floats representing the embedding vector
        """
        response = await self.client.embeddings.create(
            input=self.truncate(text),
            model=EMBEDDING_MODEL,
        )
        return response.data[0].embedding

    async def generate_embeddings_batch(
        self,
        texts: list[str],
    ) -> list[list[float]]:
        """Generate embeddings for multiple texts in batch.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors in the same order as input
        """
        if not texts:
            return []

        response = await self.client.embeddings.create(
            input=[self.truncate(text) for text in texts],
            model=EMBEDDING_MODEL,
        )
        return [item.embedding for item in response.data]

    def count_tokens(self, text: str) -> int:
        return len(self.encoding.encode(text))

    def truncate(self, text: str, max_tokens: int = MAX_INPUT_TOKENS) -> str:
        """Cut text to the model's input limit."""
        tokens = self.encoding.encode(text)
        if len(tokens) <= max_tokens:
            return text
        return self.encoding.decode(tokens[:max_tokens])

    @staticmethod
    def product_text(product: Product) -> str:
        """Text embedded for a product: English name, SKU and descriptions."""
        blob = localized_text(product.translations, "en")
        parts = [
            blob.get("name") or product.slug,
            f"SKU: {product.sku}",
            blob.get("short_description") or "",
            blob.get("description") or "",
        ]
        return "\n".join(p for p in parts if p)

    async def backfill_products(
        self,
        db: AsyncSession,
        store_id: UUID | None = None,
        batch_size: int | None = None,
    ) -> dict[str, int]:
        """Embed every product that has no embedding yet.

        Products are processed in batches; each batch is committed before
        the next one is fetched so a failure keeps earlier progress.

        Returns:
            Counts of processed and embedded products and batches
        """
        batch_size = batch_size or settings.embedding_batch_size
        stats = {"processed": 0, "embedded": 0, "batches": 0}

        while True:
            query = select(Product).where(Product.embedding.is_(None))
            if store_id is not None:
                query = query.where(Product.store_id == store_id)
            query = query.order_by(Product.created_at).limit(batch_size)
            products = list((await db.execute(query)).scalars().all())
            if not products:
                break

            vectors = await self.generate_embeddings_batch([self.product_text(p) for p in products])
            for product, vector in zip(products, vectors, strict=True):
                product.embedding = vector
            await db.commit()

            stats["processed"] += len(products)
            stats["embedded"] += len(vectors)
            stats["batches"] += 1
            logger.info("Embedded batch %d (%d products)", stats["batches"], len(products))

        return stats


# Singleton instance
_embedding_service: EmbeddingService | None = None


def get_embedding_service() -> EmbeddingService:
    """Get or create embedding service instance."""
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service
