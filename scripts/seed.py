"""Seed the article database with sample tags and articles, then derive sections."""
import asyncio
import argparse
import random
import time

from article_api.database import engine, session_scope, Base
from article_api.schemas import ArticleCreate, TagCreate
from article_api.services import article_service, section_service, tag_service

TAGS = ["Python", "FastAPI", "PostgreSQL", "Docker", "Kubernetes",
        "React", "TypeScript", "AWS", "DevOps", "Testing", "Performance",
        "Security", "GraphQL", "REST-API"]


async def seed(num_articles: int, reset: bool, rng: random.Random):
    print(f"Seeding: {len(TAGS)} tags, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with session_scope() as session:
        tags = [await tag_service.create_tag(session, TagCreate(name=name)) for name in TAGS]
        print(f"  Created {len(tags)} tags")

        # Few tags per article so that tag sets repeat and sections group
        # more than one article.
        for i in range(num_articles):
            picked = rng.sample(tags[:6], k=rng.randint(1, 3))
            rng.shuffle(picked)
            await article_service.create_article(session, ArticleCreate(
                title=f"Article {i}: notes on {', '.join(t['name'] for t in picked)}",
                content=f"This is the full content of article {i}. " * 20,
                tag_ids=[t["id"] for t in picked],
            ))
        print(f"  Created {num_articles} articles")

        sections = await section_service.auto_create_sections(session)
        print(f"  Derived {len(sections)} sections")

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the article database")
    parser.add_argument("--articles", type=int, default=100, help="Number of articles to create")
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    args = parser.parse_args()
    asyncio.run(seed(args.articles, args.reset, random.Random(args.seed)))


if __name__ == "__main__":
    main()
