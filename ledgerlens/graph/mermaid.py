"""Render flow graphs and summaries as Mermaid diagrams, and clean diagram text.

Downstream renderers need quoted edge labels, no line breaks inside labels
and short ASCII-only text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ledgerlens.graph.builder import shorten_address
from ledgerlens.models.schema import FlowGraph

MAX_LABEL_LENGTH = 40

FLOW_CLASSES = [
    "classDef wallet fill:#F3E8FF,stroke:#8B008B,stroke-width:2px;",
    "classDef contract fill:#FEE2E2,stroke:#DC143C,stroke-width:2px;",
    "classDef token fill:#E6FFFA,stroke:#14B8A6,stroke-width:2px;",
]

_UNSAFE = re.compile(r'["|\[\]{}()<>`]')
_NON_ASCII = re.compile(r"[^\x00-\x7F]")
_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLANK_RUNS = re.compile(r"\n\s*\n")
_EDGE_LABEL = re.compile(r"\|([^|]+)\|")


def sanitize_label(text: str, max_length: int = MAX_LABEL_LENGTH) -> str:
    text = _BR.sub(" ", str(text))
    text = _NON_ASCII.sub("", text)
    text = _UNSAFE.sub("", text)
    text = " ".join(text.split())
    if len(text) > max_length:
        text = text[: max_length - 3].rstrip() + "..."
    return text


def render_flow_graph(graph: FlowGraph, contracts: set[str] | frozenset[str] = frozenset()) -> str:
    lines = ["graph LR", *(f"    {c}" for c in FLOW_CLASSES)]

    if graph.placeholder or not graph.nodes:
        lines += [
            '    A["Transaction"]:::wallet',
            '    B["Complete"]:::wallet',
            '    A -->|"Success"| B',
        ]
        return "\n".join(lines)

    for nid, address in graph.nodes.items():
        style = "contract" if address in contracts else "wallet"
        lines.append(f'    {nid}["{sanitize_label(shorten_address(address))}"]:::{style}')
    for edge in graph.edges:
        label = sanitize_label(f"{edge.amount_label} {edge.token_label}")
        lines.append(f'    {edge.source} -->|"{label}"| {edge.target}')
    return "\n".join(lines)


def render_block_diagram(
    number: int,
    tx_count: int,
    gas_utilization_pct: float,
    gas_used: int,
    miner: str,
    unique_addresses: int,
) -> str:
    miner_label = sanitize_label(shorten_address(miner) if miner else "Unknown")
    return "\n".join([
        "graph TB",
        f'    B["Block {number}"] -->|"{tx_count} txns"| T["Transactions"]',
        f'    B -->|"{gas_utilization_pct:.1f}% gas used"| G["Gas: {gas_used}"]',
        f'    B -->|"Mined by"| M["{miner_label}"]',
        f'    T -->|"{unique_addresses} addresses"| A["Unique Addresses"]',
        "    classDef blockStyle fill:#e1f5fe,stroke:#01579b,stroke-width:2px",
        "    classDef txStyle fill:#f3e5f5,stroke:#4a148c,stroke-width:2px",
        "    classDef gasStyle fill:#e8f5e8,stroke:#1b5e20,stroke-width:2px",
        "    class B blockStyle",
        "    class T,A txStyle",
        "    class G,M gasStyle",
    ])


def render_address_diagram(
    balance: float,
    symbol: str,
    tx_count: int,
    is_contract: bool,
    code_size: int = 0,
    complexity: str = "",
) -> str:
    lines = [
        "graph TB",
        f'    A["Address"] -->|"{balance:.4f} {sanitize_label(symbol)}"| B["Balance"]',
        f'    A -->|"{tx_count} txns"| T["Activity"]',
        f'    A -->|"{"Contract" if is_contract else "EOA"}"| TYPE["Type"]',
    ]
    if is_contract:
        lines += [
            f'    TYPE -->|"Code: {code_size} bytes"| C["Contract Details"]',
            f'    C -->|"{sanitize_label(complexity)} complexity"| COMP["Analysis"]',
        ]
    lines += [
        "    classDef addressStyle fill:#e3f2fd,stroke:#0277bd,stroke-width:2px",
        "    classDef balanceStyle fill:#e8f5e8,stroke:#2e7d32,stroke-width:2px",
        "    classDef contractStyle fill:#fce4ec,stroke:#c2185b,stroke-width:2px",
        "    class A addressStyle",
        "    class B,T balanceStyle",
        "    class TYPE,C,COMP contractStyle" if is_contract else "    class TYPE contractStyle",
    ]
    return "\n".join(lines)


@dataclass
class DiagramCheck:
    valid: bool
    errors: list[str] = field(default_factory=list)
    cleaned: str | None = None


def clean_diagram(diagram: str) -> DiagramCheck:
    """Strip patterns renderers choke on and quote bare edge labels.

    ``cleaned`` is only set when something had to change.
    """
    errors = []
    cleaned = diagram

    for name, pattern, replacement in (
        ("<br> tag", _BR, " "),
        ("blank line run", _BLANK_RUNS, "\n"),
        ("non-ASCII character", _NON_ASCII, ""),
    ):
        if pattern.search(cleaned):
            errors.append(f"Found problematic pattern: {name}")
            cleaned = pattern.sub(replacement, cleaned)

    fixed_lines = []
    for number, line in enumerate(cleaned.split("\n"), start=1):
        stripped = line.strip()
        if stripped and not stripped.startswith("%%"):
            if stripped.count("[") != stripped.count("]"):
                errors.append(f"Line {number}: Unbalanced brackets in node definition")
            if "-->" in stripped or "---" in stripped:
                match = _EDGE_LABEL.search(line)
                if match:
                    label = match.group(1)
                    if not (label.startswith('"') and label.endswith('"')):
                        errors.append(f"Line {number}: Unquoted edge label")
                        line = line.replace(match.group(0), '|"' + label.replace('"', "") + '"|', 1)
        fixed_lines.append(line)

    cleaned = "\n".join(fixed_lines)
    return DiagramCheck(valid=not errors, errors=errors, cleaned=cleaned if errors else None)
