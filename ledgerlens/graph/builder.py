"""Build the transfer flow graph of a transaction."""

from __future__ import annotations

import networkx as nx
import pandas as pd

from ledgerlens.models.schema import DecodedEvent, FlowEdge, FlowGraph


def node_id(index: int) -> str:
    """Spreadsheet-style ids: A..Z, AA, AB, ..."""
    label = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        label = chr(65 + rem) + label
    return label


def shorten_address(address: str) -> str:
    if not address or len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_amount(amount: float) -> str:
    if amount > 1_000_000:
        return f"{amount / 1_000_000:.1f}M"
    if amount > 1_000:
        return f"{amount / 1_000:.1f}K"
    if amount <= 0:
        return "0"
    if float(amount).is_integer():
        return str(int(amount))
    if amount < 0.01:
        return f"{amount:.4g}"
    return f"{amount:.2f}"


class FlowGraphBuilder:
    """Nodes are addresses in first-seen order; edges are non-self transfers in event order."""

    def build(self, events: list[DecodedEvent]) -> FlowGraph:
        if not events:
            return FlowGraph(placeholder=True)

        ids: dict[str, str] = {}
        for e in events:
            for address in (e.from_address, e.to_address):
                if address not in ids:
                    ids[address] = node_id(len(ids))

        edges = []
        for e in events:
            if e.from_address == e.to_address:
                continue
            amount = int(e.amount) / 10 ** e.token.decimals
            edges.append(FlowEdge(
                source=ids[e.from_address],
                target=ids[e.to_address],
                amount_label=format_amount(amount),
                token_label=e.token.symbol or "Token",
            ))

        return FlowGraph(nodes={nid: address for address, nid in ids.items()}, edges=edges)


def to_networkx(graph: FlowGraph) -> nx.DiGraph:
    """Address-keyed DiGraph with per-pair transfer counts."""
    G = nx.DiGraph()
    G.add_nodes_from(graph.nodes.values())
    if not graph.edges:
        return G

    df = pd.DataFrame([
        {"source": graph.nodes[e.source], "target": graph.nodes[e.target], "token": e.token_label}
        for e in graph.edges
    ])
    agg = df.groupby(["source", "target"], sort=False).agg(
        transfer_count=("token", "count"),
        tokens=("token", lambda s: ",".join(dict.fromkeys(s))),
    ).reset_index()

    G.update(nx.from_pandas_edgelist(
        agg, source="source", target="target",
        edge_attr=["transfer_count", "tokens"],
        create_using=nx.DiGraph(),
    ))
    return G


def graph_stats(G: nx.DiGraph) -> dict:
    """Basic graph statistics."""
    n = G.number_of_nodes()
    return {
        "nodes": n,
        "edges": G.number_of_edges(),
        "density": nx.density(G) if n > 1 else 0.0,
        "is_weakly_connected": nx.is_weakly_connected(G) if n > 0 else False,
        "weakly_connected_components": nx.number_weakly_connected_components(G) if n > 0 else 0,
    }
