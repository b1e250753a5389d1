"""Shared helpers for inventory sources."""
from __future__ import annotations

from typing import Any, Iterable, Iterator, Optional

from botocore.exceptions import OperationNotPageableError


def safe_paginate(client: Any, method_name: str, result_key: str, **kwargs) -> Iterator[dict]:
    """Iterate through paginated boto3 results while handling pagination gaps."""

    try:
        paginator = client.get_paginator(method_name)
    except OperationNotPageableError:
        response = getattr(client, method_name)(**kwargs)
        for item in response.get(result_key, []):
            yield item
        return

    for page in paginator.paginate(**kwargs):
        for item in page.get(result_key, []):
            yield item


def tag_value(tags: Optional[Iterable[dict]], key: str = "Name") -> Optional[str]:
    """Return the value of tag ``key`` from an AWS ``Tags`` list."""

    return next(
        (tag["Value"] for tag in tags or [] if tag.get("Key") == key and tag.get("Value")),
        None,
    )


__all__ = ["safe_paginate", "tag_value"]
