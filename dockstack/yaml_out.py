"""Helpers for producing docker-compose YAML documents."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml
from yaml.representer import SafeRepresenter

logger = logging.getLogger(__name__)


class QuotedStr(str):
    """A string that must be rendered with double quotes in YAML."""


class _ComposeYamlDumper(yaml.SafeDumper):
    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:  # type: ignore[override]
        # PyYAML defaults to "indentless" sequences under mappings, producing:
        #   key:
        #   - item
        # Force indentation so it becomes:
        #   key:
        #     - item
        return super().increase_indent(flow, False)


def _represent_quoted_str(dumper: yaml.SafeDumper, data: QuotedStr) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style='"')


_ComposeYamlDumper.add_representer(QuotedStr, _represent_quoted_str)


def _represent_multiline_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Prefer literal block scalars for multi-line strings."""
    if "\n" in data or "\r" in data:
        normalized = data.replace("\r\n", "\n").replace("\r", "\n")
        return dumper.represent_scalar("tag:yaml.org,2002:str", normalized, style="|")
    return SafeRepresenter.represent_str(dumper, data)


_ComposeYamlDumper.add_representer(str, _represent_multiline_str)


def _prepare_service(stanza: Dict[str, Any]) -> Dict[str, Any]:
    prepared = dict(stanza)
    ports = prepared.get("ports")
    if isinstance(ports, list):
        # "22:22" style mappings would otherwise be read back as base-60 ints
        prepared["ports"] = [QuotedStr(item) if isinstance(item, str) else item for item in ports]
    environment = prepared.get("environment")
    if isinstance(environment, dict):
        prepared["environment"] = {name: QuotedStr(str(val)) for name, val in environment.items()}
    return prepared


def _prepare_for_compose_dump(manifest: Dict[str, Any]) -> Dict[str, Any]:
    """Quote port mappings and environment values inside each service stanza only."""
    services = manifest.get("services")
    if not isinstance(services, dict):
        return manifest
    prepared = dict(manifest)
    prepared["services"] = {
        name: _prepare_service(stanza) if isinstance(stanza, dict) else stanza
        for name, stanza in services.items()
    }
    return prepared


def dump_yaml(data: Any) -> str:
    """Serialize data into YAML with compose-friendly indentation."""
    return yaml.dump(
        data,
        Dumper=_ComposeYamlDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=4096,
    )


def dump_compose_yaml(manifest: Dict[str, Any]) -> str:
    return dump_yaml(_prepare_for_compose_dump(manifest))


def load_yaml_mapping(path: Path, what: str = "YAML file") -> Dict:
    """Load a YAML file that must contain a mapping."""
    if not path.exists():
        raise FileNotFoundError(f"{what} not found: {path}")

    logger.debug("Loading %s: %s", what, path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{what} did not produce a mapping")
    return data


def write_text_file(path: Path, text: str) -> None:
    with path.open("w", encoding="utf-8") as handle:
        handle.write(text)
    logger.debug("Wrote %s", path)
