"""
Course Indexing Script: CSV catalog -> Embed course text -> Qdrant

Builds the course collection used by the advisor's semantic search. One
point per published course; the payload carries the course fields so
search results can be turned back into candidate courses without a
database round trip.

Usage:
    python scripts/index_courses.py --courses ../data/courses.csv
    python scripts/index_courses.py --courses ../data/courses.csv --collection course_catalog --recreate

Environment variables (or .env file):
    QDRANT_URL, QDRANT_API_KEY
    EMBEDDING_MODEL (default: all-MiniLM-L6-v2)
"""

import argparse
import os
import sys

from dotenv import load_dotenv
from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PayloadSchemaType, PointStruct, VectorParams

# Add parent dir to path so we can import engine modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from context_engine.logging_config import configure_logging
from context_engine.models.schemas import CandidateCourse
from context_engine.repositories.csv_catalog import CSVCatalog
from context_engine.services.embedding import EmbeddingService


def course_payload(course: CandidateCourse) -> dict:
    """Point payload: every course field, keyed the way search results are read back."""
    payload = course.model_dump(mode="json", exclude={"id", "score", "similarity"})
    payload["course_id"] = course.id
    return payload


def setup_qdrant_collection(client: QdrantClient, collection_name: str, vector_size: int, recreate: bool = False):
    """Create the collection if needed, plus a keyword index on level."""
    collections = [c.name for c in client.get_collections().collections]

    if collection_name in collections and recreate:
        client.delete_collection(collection_name)
        print(f"  Deleted existing collection '{collection_name}'")
        collections.remove(collection_name)

    if collection_name in collections:
        print(f"  Collection '{collection_name}' already exists")
    else:
        client.create_collection(
            collection_name=collection_name,
            vectors_config=VectorParams(
                size=vector_size,
                distance=Distance.COSINE
            )
        )
        print(f"  Created collection '{collection_name}' ({vector_size} dims, cosine)")

    client.create_payload_index(
        collection_name=collection_name,
        field_name="level",
        field_schema=PayloadSchemaType.KEYWORD
    )
    print("  Ensured index on 'level'")


def embed_and_upsert(
    courses: list,
    embedding_service: EmbeddingService,
    client: QdrantClient,
    collection_name: str,
    batch_size: int = 64
) -> int:
    """Embed all courses in batches and upsert them. Returns points written."""
    embeddings = embedding_service.encode_courses(courses)

    points = [
        PointStruct(id=course.id, vector=embedding.tolist(), payload=course_payload(course))
        for course, embedding in zip(courses, embeddings)
    ]

    for i in range(0, len(points), batch_size):
        batch = points[i:i + batch_size]
        client.upsert(collection_name=collection_name, points=batch)
        print(f"  Upserted batch {i // batch_size + 1}/{(len(points) + batch_size - 1) // batch_size}")

    return len(points)


def verify_index(client: QdrantClient, collection_name: str, embedding_service: EmbeddingService, query: str):
    """Run a quick test search to verify the courses are searchable."""
    info = client.get_collection(collection_name)
    print(f"\n  Collection points: {info.points_count}")

    results = client.query_points(
        collection_name=collection_name,
        query=embedding_service.encode(query).tolist(),
        limit=3
    ).points

    print(f"  Test query: '{query}'")
    for r in results:
        print(f"    score={r.score:.3f} | {r.payload.get('title', '')}")


def main():
    parser = argparse.ArgumentParser(description='Index the course catalog into Qdrant')
    parser.add_argument(
        '--courses',
        default=None,
        help='Path to courses CSV (default: COURSES_CSV)'
    )
    parser.add_argument(
        '--collection',
        default=None,
        help='Qdrant collection name (default: QDRANT_COURSE_COLLECTION or course_catalog)'
    )
    parser.add_argument(
        '--recreate',
        action='store_true',
        help='Drop and rebuild the collection'
    )
    parser.add_argument(
        '--verify-query',
        default='learn web development',
        help='Query used for the post-index test search'
    )
    parser.add_argument(
        '--env-file',
        default=None,
        help='Path to .env file (default: auto-detect)'
    )
    args = parser.parse_args()

    load_dotenv(args.env_file)
    configure_logging(os.getenv('LOG_LEVEL', 'INFO'))

    courses_csv = args.courses or os.getenv('COURSES_CSV')
    collection = args.collection or os.getenv('QDRANT_COURSE_COLLECTION', 'course_catalog')
    if not courses_csv:
        print("  ERROR: pass --courses or set COURSES_CSV")
        sys.exit(1)

    print("=" * 70)
    print("  COURSE CATALOG INDEXING")
    print("=" * 70)
    print(f"\n  Catalog: {courses_csv}")
    print(f"  Collection: {collection}")

    print("\n--- Step 1: Loading catalog ---")
    catalog = CSVCatalog(courses_csv)
    courses = [c for c in catalog.courses if c.is_published]
    print(f"  Found {len(courses)} published courses ({len(catalog.courses)} total)")

    if not courses:
        print("  ERROR: No published courses to index!")
        sys.exit(1)

    print("\n--- Step 2: Loading embedding model ---")
    embedding_service = EmbeddingService(model_name=os.getenv('EMBEDDING_MODEL', 'all-MiniLM-L6-v2'))

    print("\n--- Step 3: Setting up Qdrant ---")
    qdrant_url = os.getenv('QDRANT_URL', 'http://localhost:6333')
    qdrant_api_key = os.getenv('QDRANT_API_KEY')

    if qdrant_api_key:
        client = QdrantClient(url=qdrant_url, api_key=qdrant_api_key)
        print(f"  Connected to Qdrant Cloud: {qdrant_url}")
    else:
        client = QdrantClient(url=qdrant_url)
        print(f"  Connected to Qdrant: {qdrant_url}")

    setup_qdrant_collection(client, collection, embedding_service.vector_size, recreate=args.recreate)

    print("\n--- Step 4: Embedding courses ---")
    total_points = embed_and_upsert(courses, embedding_service, client, collection)
    print(f"  Total points upserted: {total_points}")

    print("\n--- Step 5: Verification ---")
    verify_index(client, collection, embedding_service, args.verify_query)

    print("\n" + "=" * 70)
    print("  INDEXING COMPLETE")
    print("=" * 70)


if __name__ == '__main__':
    main()
