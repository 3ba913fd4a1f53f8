"""Shared pieces for operation modules: argument base model and content helpers."""

import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class OperationArgs(BaseModel):
    """Base for operation argument models; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")


def text_content(text: str) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": text}]}


def json_content(value: Any) -> Dict[str, Any]:
    return text_content(json.dumps(value, indent=2, default=str))
