"""DynamoDB store for the calendar owner's OAuth tokens: one item per owner."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.config import Config

PK = "owner"
DEFAULT_OWNER = "admin"
TOKEN_FIELDS = ("refresh_token", "access_token", "expiry")

_SERIALIZER = TypeSerializer()
_DESERIALIZER = TypeDeserializer()


def _client():
    endpoint = os.environ.get("DYNAMODB_ENDPOINT_URL")
    region = os.environ.get("AWS_REGION", "us-east-1")
    kwargs = {"region_name": region}
    if endpoint:
        kwargs["endpoint_url"] = endpoint
    return boto3.client("dynamodb", config=Config(retries={"mode": "standard", "max_attempts": 3}), **kwargs)


def table_name() -> str:
    return os.environ.get("ADMIN_TOKENS_TABLE", "scheduler_admin_tokens")


def get_tokens(owner: str = DEFAULT_OWNER) -> dict[str, str] | None:
    """Return {refresh_token, access_token, expiry} for owner, or None if never stored."""
    client = _client()
    try:
        resp = client.get_item(TableName=table_name(), Key={PK: {"S": owner}})
    except client.exceptions.ResourceNotFoundException:
        return None
    item = resp.get("Item")
    if not item:
        return None
    tokens = {k: _DESERIALIZER.deserialize(item[k]) for k in TOKEN_FIELDS if k in item}
    return tokens if tokens.get("refresh_token") or tokens.get("access_token") else None


def save_tokens(tokens: dict[str, Any], owner: str = DEFAULT_OWNER) -> None:
    """
    Upsert the owner's tokens. Fields that are None are left untouched, so a
    refresh that returns no new refresh_token keeps the stored one.
    """
    names: dict[str, str] = {}
    values: dict[str, dict[str, Any]] = {}
    parts: list[str] = []
    for key in TOKEN_FIELDS:
        value = tokens.get(key)
        if value is None:
            continue
        parts.append(f"#{key} = :{key}")
        names[f"#{key}"] = key
        values[f":{key}"] = _SERIALIZER.serialize(str(value))

    now = datetime.now(timezone.utc).isoformat()
    parts.append("#updated_at = :updated_at")
    names["#updated_at"] = "updated_at"
    values[":updated_at"] = _SERIALIZER.serialize(now)

    _client().update_item(
        TableName=table_name(),
        Key={PK: {"S": owner}},
        UpdateExpression="SET " + ", ".join(parts),
        ExpressionAttributeNames=names,
        ExpressionAttributeValues=values,
    )
