"""
Route security rules loaded from ``config/security_config.yaml``.

Each rule names a path (literal or with ``{param}`` segments), the methods it
covers, and up to three independent requirements:

    auth_required   the caller must present a valid access token
    min_level       coarse role-level gate
    permissions     "action:resource" pairs checked without a target record

A request passes only if it satisfies every requirement of the rule it
matches. Literal paths win over templated ones; otherwise rules are tried in
file order and the first match is used.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class SecurityConfigError(ValueError):
    """Raised when the route security YAML is missing or invalid."""


class AuthConfig(BaseModel):
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"


class DefaultRule(BaseModel):
    auth_required: bool = True
    min_level: int = Field(default=0, ge=0)


class RouteRule(BaseModel):
    path: str
    methods: list[str] = Field(default_factory=lambda: ["GET"])

    auth_required: bool | None = None
    min_level: int | None = Field(default=None, ge=0)
    permissions: list[str] = Field(default_factory=list)

    @field_validator("methods")
    @classmethod
    def _upper_methods(cls, value: list[str]) -> list[str]:
        return [m.upper() for m in value]

    @field_validator("permissions")
    @classmethod
    def _check_permissions(cls, value: list[str]) -> list[str]:
        for item in value:
            action, sep, resource = item.partition(":")
            if not sep or not action.strip() or not resource.strip():
                raise ValueError(f"permission {item!r} must look like 'action:resource'")
        return value

    def permission_pairs(self) -> tuple[tuple[str, str], ...]:
        pairs = (p.partition(":") for p in self.permissions)
        return tuple((action.strip(), resource.strip()) for action, _, resource in pairs)


class SecurityConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    default: DefaultRule = Field(default_factory=DefaultRule)
    routes: list[RouteRule] = Field(default_factory=list)


@dataclass(frozen=True)
class EffectiveRule:
    """The requirements that apply to one request, defaults filled in."""

    auth_required: bool
    min_level: int
    permissions: tuple[tuple[str, str], ...] = ()


_PARAM = re.compile(r"\{[^/]+\}")


@dataclass(frozen=True)
class _CompiledRule:
    rule: RouteRule
    pattern: re.Pattern[str] | None

    @classmethod
    def build(cls, rule: RouteRule) -> _CompiledRule:
        if not _PARAM.search(rule.path):
            return cls(rule, None)
        # "/employees/{id}" matches one path segment per parameter.
        literal_parts = _PARAM.split(rule.path)
        regex = "[^/]+".join(re.escape(part) for part in literal_parts)
        return cls(rule, re.compile(rf"^{regex}$"))

    def matches(self, path: str, method: str) -> bool:
        if method not in self.rule.methods:
            return False
        if self.pattern is None:
            return path == self.rule.path
        return self.pattern.match(path) is not None


class SecurityConfig:
    """Validated config plus (path, method) lookup."""

    def __init__(self, model: SecurityConfigModel):
        self.model = model
        compiled = [_CompiledRule.build(rule) for rule in model.routes]
        self._literal = [c for c in compiled if c.pattern is None]
        self._templated = [c for c in compiled if c.pattern is not None]

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    def match(self, path: str, method: str) -> EffectiveRule:
        method = method.upper()
        for candidate in (*self._literal, *self._templated):
            if candidate.matches(path, method):
                return self._resolve(candidate.rule)

        default = self.model.default
        return EffectiveRule(auth_required=default.auth_required, min_level=default.min_level)

    def _resolve(self, rule: RouteRule) -> EffectiveRule:
        default = self.model.default
        min_level = default.min_level if rule.min_level is None else rule.min_level
        permissions = rule.permission_pairs()

        if rule.auth_required is not None:
            auth_required = rule.auth_required
        else:
            # Level gates and permission checks need a caller identity.
            auth_required = default.auth_required or min_level > 0 or bool(permissions)

        return EffectiveRule(auth_required=auth_required, min_level=min_level, permissions=permissions)


def load_security_config(path: Path) -> SecurityConfig:
    try:
        raw: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise SecurityConfigError(f"Cannot read security config {path}: {exc}") from exc

    if "security" not in raw:
        raise SecurityConfigError(f"Missing top-level 'security' key in config: {path}")

    try:
        model = SecurityConfigModel.model_validate(raw["security"])
    except ValidationError as exc:
        raise SecurityConfigError(f"Invalid security config {path}: {exc}") from exc
    return SecurityConfig(model)
