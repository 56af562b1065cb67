"""Database seeder: demo users, posts, likes and comments."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from app.database import engine, async_session, Base
from app.identity import create_access_token
from app.models import Category, Comment, Post, User

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "testing",
          "algorithms", "typescript", "sql", "git", "linux", "security"]


async def seed(small: bool = False, print_tokens: bool = False):
    num_users = 5 if small else 50
    num_posts = 20 if small else 2000
    max_comments_per_post = 3 if small else 8

    print(f"Seeding: {num_users} users, {num_posts} posts, up to {max_comments_per_post} comments each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = User(
                id=f"user_{i:04d}",
                name=f"Learner {i}",
                image=f"https://avatars.example.com/{i:04d}.png",
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users")

        total_comments = 0
        categories = list(Category)
        for i in range(num_posts):
            created = datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 60 * 24 * 90))
            likers = random.sample(users, k=random.randint(0, min(10, num_users)))
            post = Post(
                body=f"Notes #{i} on {random.choice(TOPICS)}: what I learned this week.",
                category=random.choice(categories),
                auth_user_id=random.choice(users).id,
                liked_ids=[u.id for u in likers],
                created_at=created,
            )
            session.add(post)
            await session.flush()

            for _ in range(random.randint(0, max_comments_per_post)):
                session.add(Comment(
                    body=f"Thanks! This helped me with {random.choice(TOPICS)}. " * random.randint(1, 5),
                    post_id=post.id,
                    user_id=random.choice(users).id,
                    created_at=created + timedelta(minutes=random.randint(1, 600)),
                ))
                total_comments += 1

            if (i + 1) % 500 == 0:
                await session.flush()
                print(f"  {i + 1} posts created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")

    if print_tokens:
        print("\nBearer tokens:")
        for user in users[:5]:
            print(f"  {user.id}: {create_access_token(user.id, user.name, user.image)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the learn database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (20 posts)")
    parser.add_argument("--tokens", action="store_true", help="Print bearer tokens for the first users")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small, print_tokens=args.tokens))


if __name__ == "__main__":
    main()
