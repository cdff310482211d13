# src/vsr_snapshot/runtime/filters.py
from __future__ import annotations

"""Filters file produced by the snapshot manager.

Expected shape (JSON object):

    {
      "account_owners": "<base58>,<base58>,...",
      "account_mints": "<base58>,...",
      "vsr_registrar_data": "<base64 registrar account data>"
    }

Only vsr_registrar_data feeds the voting power pass; the owner and mint lists
are parsed and validated so a broken filters file fails before any work starts.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from vsr_snapshot.ledger.layout import decode_registrar
from vsr_snapshot.ledger.registrar import Registrar
from vsr_snapshot.runtime.errors import DecodeError
from vsr_snapshot.util.pubkey import Pubkey


class FiltersData(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    account_owners: str
    account_mints: str
    vsr_registrar_data: str


@dataclass(frozen=True)
class Filters:
    account_owners: Tuple[Pubkey, ...]
    account_mints: Tuple[Pubkey, ...]
    vsr_registrar_data: bytes

    def registrar(self) -> Registrar:
        return decode_registrar(self.vsr_registrar_data)


def split_pubkeys(pubkeys_string: str, name: str) -> List[Pubkey]:
    out: List[Pubkey] = []
    if not pubkeys_string.strip():
        return out
    for s in pubkeys_string.split(","):
        try:
            out.append(Pubkey.from_base58(s))
        except DecodeError as e:
            raise DecodeError("invalid_filters", "bad_pubkey", {"field": name, "value": s}) from e
    return out


def decode_base64_field(value: str, name: str) -> bytes:
    try:
        return base64.b64decode(value.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError("invalid_filters", "bad_base64", {"field": name}) from e


def parse_filters(raw: object) -> Filters:
    try:
        data = FiltersData.model_validate(raw)
    except ValidationError as e:
        raise DecodeError("invalid_filters", "schema", {"errors": e.errors(include_url=False)}) from e

    return Filters(
        account_owners=tuple(split_pubkeys(data.account_owners, "account_owners")),
        account_mints=tuple(split_pubkeys(data.account_mints, "account_mints")),
        vsr_registrar_data=decode_base64_field(data.vsr_registrar_data, "vsr_registrar_data"),
    )


def load_filters(path: str) -> Filters:
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise DecodeError("invalid_filters", "not_json", {"path": str(p)}) from e
    return parse_filters(raw)


__all__ = ["FiltersData", "Filters", "split_pubkeys", "decode_base64_field", "parse_filters", "load_filters"]
