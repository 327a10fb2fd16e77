from __future__ import annotations

import re


FIELD_TOKEN_REGISTRY = [
    {"token": "{nome}", "label": "Nome"},
    {"token": "{cognome}", "label": "Cognome"},
    {"token": "{titolo}", "label": "Titolo (Dr., Prof., etc.)"},
    {"token": "{professione}", "label": "Professione"},
    {"token": "{disciplina}", "label": "Disciplina"},
    {"token": "{evento_nome}", "label": "Nome Evento"},
    {"token": "{evento_date}", "label": "Date Evento"},
    {"token": "{evento_luogo}", "label": "Luogo Evento"},
    {"token": "{qr_code}", "label": "QR Code"},
]

ALLOWED_FIELD_TOKENS = {entry["token"] for entry in FIELD_TOKEN_REGISTRY}
DEFAULT_FIELD_TOKEN = FIELD_TOKEN_REGISTRY[0]["token"]
QR_CODE_TOKEN = "{qr_code}"
FIELD_TOKEN_PATTERN = re.compile(r"\{[a-z_]+\}")


def get_field_tokens() -> list[dict[str, str]]:
    return [dict(entry) for entry in FIELD_TOKEN_REGISTRY]


def get_token_label(token: str) -> str:
    for entry in FIELD_TOKEN_REGISTRY:
        if entry["token"] == token:
            return entry["label"]
    return ""


def find_tokens(content: str) -> list[str]:
    """Return the known tokens embedded in ``content``, in order of appearance."""
    return [
        match
        for match in FIELD_TOKEN_PATTERN.findall(str(content or ""))
        if match in ALLOWED_FIELD_TOKENS
    ]


def substitute_tokens(content: str, values: dict[str, str]) -> str:
    """Replace known tokens with their values; unknown ``{...}`` text stays verbatim."""

    def _replace(match) -> str:
        token = match.group(0)
        if token not in ALLOWED_FIELD_TOKENS:
            return token
        return str(values.get(token, ""))

    return FIELD_TOKEN_PATTERN.sub(_replace, str(content or ""))
