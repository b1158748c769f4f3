#!/usr/bin/env python3
"""Seed a MongoDB collection with documents from a JSON file.

Documents are inserted one by one through a MongoModel. With --transaction
the whole batch runs in one ambient transaction and any failure cancels it.
"""

import argparse
import json
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


def load_env(env_json: Path):
    """Load environment variables from JSON file."""
    if env_json and env_json.exists():
        data = json.loads(env_json.read_text())
        for k, v in data.items():
            os.environ[k] = os.path.expandvars(v)


def build_model(collection: str):
    from mongo_facade import MongoModel

    return type("SeedModel", (MongoModel,), {"collection_name": collection})


def seed(model, documents, use_transaction: bool = False) -> int:
    """Insert documents and return how many were written."""
    if not use_transaction:
        created = 0
        for doc in documents:
            result = model.insert_one(doc)
            created += 1
            print(f"✓ seeded {result.inserted_id}")
        return created

    created = 0
    with model.ambient_transaction():
        for doc in documents:
            result = model.insert_one(doc)
            created += 1
            print(f"✓ seeded {result.inserted_id} (pending commit)")
    return created


def main(argv=None):
    """Main seeding function."""
    ap = argparse.ArgumentParser(
        description="Seed a MongoDB collection with documents from JSON."
    )
    ap.add_argument(
        "--env",
        default="devdata/env-mongo-local.json",
        help="Environment JSON file that sets MONGO_* variables",
    )
    ap.add_argument(
        "--json",
        required=True,
        help="Path to a JSON array of documents (or a single document)",
    )
    ap.add_argument("--collection", required=True, help="Target collection name")
    ap.add_argument(
        "--transaction",
        action="store_true",
        help="Insert all documents in one transaction (requires a replica set)",
    )
    args = ap.parse_args(argv)

    load_env(Path(args.env))

    if not os.getenv("MONGO_URL") or not os.getenv("MONGO_DB_NAME"):
        print("Error: MONGO_URL and MONGO_DB_NAME environment variables are required")
        return 1

    try:
        documents = json.loads(Path(args.json).read_text())
    except FileNotFoundError:
        print(f"Error: Documents file not found: {args.json}")
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in documents file: {e}")
        return 1

    # Handle single object input
    if isinstance(documents, dict):
        documents = [documents]

    if not documents:
        print("Error: No documents found in JSON file")
        return 1

    print(f"Seeding collection: {args.collection}")
    print(f"Database: {os.getenv('MONGO_DB_NAME')}")

    from mongo_facade import FacadeError
    from pymongo.errors import PyMongoError

    model = build_model(args.collection)
    try:
        created = seed(model, documents, use_transaction=args.transaction)
    except (FacadeError, PyMongoError) as e:
        print(f"Error: Seeding failed: {e}")
        if args.transaction:
            print("Transaction cancelled, no documents were written")
        return 1

    print(f"\nSeeding complete: {created} created")
    return 0


if __name__ == "__main__":
    sys.exit(main())
