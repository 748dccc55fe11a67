"""
Smoke test for the REST cache client against JSONPlaceholder.

Run from package root:
    python -m simple_rest_cache.smoke_client
"""
import asyncio
import logging

from .client import Client
from .config_loader import configure_logging

logger = logging.getLogger(__name__)


async def main() -> None:
    async with Client("https://jsonplaceholder.typicode.com") as api:

        class User(api.Model, dirname="users"):
            pass

        class Comment(api.Model, dirname="comments", references={"postId": "Post"}):
            pass

        class Post(api.Model, dirname="posts", references={"userId": "User"}):
            @property
            def comments(self):
                return api.collection(Comment).in_(self)

        post = await Post.get(1).wait()
        logger.info("Post #%s: %s", post.id, post.title)

        author = await post.userId.wait()
        logger.info("Written by %s (%s)", author.username, author.email)

        comments = await post.comments.wait()
        logger.info("%s comments, first by %s", len(comments), comments.first().email)

        # Second lookup is served from the cache without a request
        again = Post.get(1)
        logger.info("Cached title: %s", again.title)


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
