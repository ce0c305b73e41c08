#!/usr/bin/env python3
"""Create the DynamoDB admin-token table. Run from the repo root: python -m scripts.create_table"""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the repo root so AWS_REGION etc. are set before the client is built
_repo_root = Path(__file__).resolve().parent.parent
load_dotenv(_repo_root / ".env")
load_dotenv(_repo_root / ".env.local")

from src.slot_scheduler import token_store


def create_table() -> bool:
    """Create the token table keyed by owner. Returns False if it already exists."""
    client = token_store._client()
    table = token_store.table_name()
    try:
        client.create_table(
            TableName=table,
            KeySchema=[{"AttributeName": token_store.PK, "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": token_store.PK, "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
    except client.exceptions.ResourceInUseException:
        print(f"Table {table} already exists.", file=sys.stderr)
        return False
    print(f"Created table: {table}")
    return True


if __name__ == "__main__":
    try:
        create_table()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
