"""Reusable base models for RPC payloads and configuration documents."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    A base model that converts field names to camel case when serializing.

    For example, the field name `gas_limit` in a Python model will be
    represented as `gasLimit` when it is serialized to JSON.

    Ethereum JSON-RPC responses and genesis documents both use camel case,
    so models built on this class read and write them without hand-written aliases.

    Unknown keys are ignored: node clients add fields between releases and
    the harness only reads the ones it needs.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        extra="ignore",
    )


class StrictBaseModel(CamelModel):
    """A strict, immutable pydantic base model."""

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
    }
