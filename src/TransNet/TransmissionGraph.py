#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- TransNet --
##  Pathogen Transmission Networks from Trait-Annotated Phylogenies
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

"""
Author : Mark Kessler
Last Edit : 11/7/25
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]

The transmission graph: one node per declared state of the selected
character, one weighted edge per observed ordered state change.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Iterable
import networkx as nx
from .Transitions import Transition


#########################
#### EXCEPTION CLASS ####
#########################

class TransmissionGraphError(Exception):
    """
    Raised when a transition refers to a state that is not a node of the
    graph.
    """
    def __init__(self, message : str = "Error building the transmission \
                                        graph") -> None:
        self.message = message
        super().__init__(self.message)


############################
#### TRANSMISSION GRAPH ####
############################

@dataclass(frozen = True)
class StateNode:
    """
    A graph node. 'id' is the 1-based state code, 'label' its state label.
    """
    id : int
    label : str


@dataclass(frozen = True)
class TransmissionGraph:
    """
    Immutable directed, weighted graph over the states of one character.
    There is at most one edge per ordered (source, target) pair.
    """
    nodes : tuple[StateNode, ...]
    edges : tuple[Transition, ...]

    def labels(self) -> list[str]:
        return [node.label for node in self.nodes]

    def label(self, state : int) -> str:
        return self.nodes[state - 1].label

    def weight(self, source : int, target : int) -> int:
        """
        Returns:
            int: the weight of the source -> target edge, 0 if there is none
        """
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge.weight
        return 0

    def total_weight(self) -> int:
        return sum(edge.weight for edge in self.edges)

    def node_table(self) -> list[dict[str, object]]:
        return [{"id" : node.id, "label" : node.label} for node in self.nodes]

    def edge_table(self) -> list[dict[str, int]]:
        return [{"from" : edge.source, "to" : edge.target,
                 "weight" : edge.weight} for edge in self.edges]

    def to_networkx(self) -> nx.DiGraph:
        """
        Convert to a networkx DiGraph. Nodes are state codes with a 'label'
        attribute; edges carry a 'weight' attribute.

        Args:
            N/A
        Returns:
            nx.DiGraph: the equivalent networkx graph
        """
        graph = nx.DiGraph()
        graph.add_nodes_from((node.id, {"label" : node.label})
                             for node in self.nodes)
        graph.add_weighted_edges_from((edge.source, edge.target, edge.weight)
                                      for edge in self.edges)
        return graph


def build_transmission_graph(state_labels : Iterable[str],
                             transitions : Iterable[Transition]) \
                             -> TransmissionGraph:
    """
    Combine the full state label vocabulary of a character with the observed
    transitions. States without any transition are still nodes.

    Raises:
        TransmissionGraphError: if a transition names an undeclared state, or
                                two transitions share an ordered pair.
    Args:
        state_labels (Iterable[str]): labels of states 1..n, in order
        transitions (Iterable[Transition]): aggregated transitions
    Returns:
        TransmissionGraph: the graph
    """
    nodes = tuple(StateNode(index + 1, label)
                  for index, label in enumerate(state_labels))

    seen : set[tuple[int, int]] = set()
    edges = []
    for transition in transitions:
        for state in (transition.source, transition.target):
            if not 1 <= state <= len(nodes):
                raise TransmissionGraphError(f"Transition {transition} uses \
                                               state {state}, but only \
                                               {len(nodes)} states are \
                                               declared")
        pair = (transition.source, transition.target)
        if pair in seen:
            raise TransmissionGraphError(f"Transition {pair} appears more \
                                           than once")
        seen.add(pair)
        edges.append(transition)

    return TransmissionGraph(nodes, tuple(edges))


############################
#### CENTRALITY METRICS ####
############################

def centrality_metrics(graph : TransmissionGraph) -> dict[int, dict[str, Any]]:
    """
    Per state centrality of a transmission graph, keyed by state id so that
    states sharing a label stay apart. Degrees count edges, not weights.

    - label: the state label
    - indegree: number of states that seeded this state
    - outdegree: number of states this state seeded
    - degree: indegree + outdegree
    - betweenness: unnormalized shortest path betweenness (directed)
    - closeness: 1 / sum of undirected distances to every reachable state
                 (NaN for isolated states)
    - source_hub_ratio: outdegree / degree. ~0 dead end, .5 hub, ~1 source
                        (NaN for isolated states)

    Args:
        graph (TransmissionGraph): the graph to measure
    Returns:
        dict[int, dict[str, Any]]: state id -> metric name -> value
    """
    G = graph.to_networkx()
    undirected = G.to_undirected()
    betweenness = nx.betweenness_centrality(G, normalized = False,
                                            weight = None)

    metrics : dict[int, dict[str, Any]] = {}
    for node in graph.nodes:
        indegree = G.in_degree(node.id)
        outdegree = G.out_degree(node.id)
        degree = indegree + outdegree

        distances = nx.single_source_shortest_path_length(undirected, node.id)
        far = sum(distances.values())

        metrics[node.id] = {
            "label" : node.label,
            "indegree" : float(indegree),
            "outdegree" : float(outdegree),
            "degree" : float(degree),
            "betweenness" : float(betweenness[node.id]),
            "closeness" : 1.0 / far if far > 0 else math.nan,
            "source_hub_ratio" : outdegree / degree if degree > 0 else math.nan,
        }
    return metrics
