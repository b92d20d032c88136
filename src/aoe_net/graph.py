#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Dense weighted directed graph used by the AOE network model.

Vertices are events identified by dense integer ids in ``[0, n)``, edges are
activities. The graph is rebuilt from scratch for every computation and stays
read only while times are propagated.
"""
#==============================================================================
"""
    AoeNet
    Copyright (C) 2025 anonimous

    This program is free software: you can redistribute it and/or modify
    it under the terms of the GNU General Public License as published by
    the Free Software Foundation, either version 3 of the License, or
    (at your option) any later version.

    This program is distributed in the hope that it will be useful,
    but WITHOUT ANY WARRANTY; without even the implied warranty of
    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
    GNU General Public License for more details.

    You should have received a copy of the GNU General Public License
    along with this program.  If not, see <http://www.gnu.org/licenses/>.
"""

#==============================================================================
import numpy as np

#==============================================================================
class WeightedDigraph:
    """
    Adjacency store keyed by dense vertex id.

    Parameters
    ----------
    n : int
        Number of vertices

    Notes
    -----
    Parallel edges are kept in the successor and predecessor lists (one entry
    per edge), so degree counters stay consistent with the number of edges.
    The weight of a vertex pair is the largest duration among its parallel
    edges: it is the only one that matters for both max and min relaxation.
    """

    def __init__(self, n):
        assert isinstance(n, int)
        assert n >= 0

        self._succ   = [[] for _ in range(n)]
        self._pred   = [[] for _ in range(n)]
        self._weight = {}

    #--------------------------------------------------------------------------
    def __len__(self):
        return len(self._succ)

    #--------------------------------------------------------------------------
    def _check(self, i):
        if not 0 <= i < len(self._succ):
            raise IndexError(f"Vertex id {i} is out of range [0, {len(self._succ)})")

    #--------------------------------------------------------------------------
    def add_edge(self, u, v, weight):
        """
        Add a directed edge.

        Parameters
        ----------
        u : int
            Source vertex id
        v : int
            Destination vertex id
        weight : float
            Edge duration

        Raises
        ------
        IndexError
            If any endpoint is not a valid vertex id
        """
        self._check(u)
        self._check(v)

        self._succ[u].append(v)
        self._pred[v].append(u)

        old = self._weight.get((u, v))
        if old is None or weight > old:
            self._weight[(u, v)] = weight

    #--------------------------------------------------------------------------
    def successors(self, u):
        """Get destination ids of all edges leaving u"""
        return self._succ[u]

    def predecessors(self, v):
        """Get source ids of all edges entering v"""
        return self._pred[v]

    def weight(self, u, v):
        """
        Get duration of the edge (u, v).

        Raises
        ------
        KeyError
            If (u, v) is not an edge
        """
        return self._weight[(u, v)]

    #--------------------------------------------------------------------------
    def in_degree(self, v):
        return len(self._pred[v])

    def out_degree(self, u):
        return len(self._succ[u])

    def in_degrees(self):
        """Get in-degrees of all vertices as an integer array"""
        return np.array([len(p) for p in self._pred], dtype=int)

    def out_degrees(self):
        """Get out-degrees of all vertices as an integer array"""
        return np.array([len(s) for s in self._succ], dtype=int)

    #--------------------------------------------------------------------------
    def __repr__(self):
        return 'WeightedDigraph(n=%d, edges=%d)' % (len(self), sum(len(s) for s in self._succ))
