#!/usr/bin/env python3
# -*- coding: utf-8 -*-
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
import pytest

from aoe_net import WeightedDigraph

#==============================================================================
@pytest.fixture
def diamond():
    g = WeightedDigraph(4)
    g.add_edge(0, 1, 3.)
    g.add_edge(0, 2, 2.)
    g.add_edge(1, 3, 4.)
    g.add_edge(2, 3, 1.)
    return g

def test_adjacency(diamond):
    assert len(diamond) == 4
    assert diamond.successors(0) == [1, 2]
    assert diamond.predecessors(3) == [1, 2]
    assert diamond.successors(3) == []
    assert diamond.predecessors(0) == []

def test_weight(diamond):
    assert diamond.weight(0, 1) == 3.
    assert diamond.weight(2, 3) == 1.
    with pytest.raises(KeyError):
        diamond.weight(1, 0)

def test_degrees(diamond):
    assert diamond.in_degree(3) == 2
    assert diamond.out_degree(0) == 2
    np.testing.assert_array_equal(diamond.in_degrees(),  [0, 1, 1, 2])
    np.testing.assert_array_equal(diamond.out_degrees(), [2, 1, 1, 0])

def test_parallel_edges():
    g = WeightedDigraph(2)
    g.add_edge(0, 1, 2.)
    g.add_edge(0, 1, 5.)
    g.add_edge(0, 1, 1.)
    assert g.successors(0) == [1, 1, 1]
    assert g.in_degree(1) == 3
    assert g.weight(0, 1) == 5.

@pytest.mark.parametrize('u,v', [(0, 2), (2, 0), (-1, 1)])
def test_unknown_vertex(u, v):
    g = WeightedDigraph(2)
    with pytest.raises(IndexError):
        g.add_edge(u, v, 1.)

def test_empty():
    g = WeightedDigraph(0)
    assert len(g) == 0
    assert g.in_degrees().shape == (0,)
