"""
FastAPI query surface for the events indexer.

Provides:
- POST /index/posts - Index a batch of normalized posts
- GET /topics/{topic}/posts, /topics/{topic}/related - Topic analytics
- PUT /posts/{post_id}/content - Correct a stored post
- GET /stats - Indexing statistics
- GET /health - Service health check
"""

from events_indexer.api.app import create_app

__all__ = ["create_app"]
