#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
AoeNet - Activity-On-Edge network analysis
==========================================

This module computes scheduling statistics for AOE networks: weighted directed
acyclic graphs whose vertices are events (milestones) and whose edges are
activities with durations.

For every event the model computes the earliest time it can occur and the
latest time it may occur without delaying project completion. Activity time
reserves (slack) and the critical path are derived from these.

Features
--------
- Incremental network construction (``add_event``, ``add_activity``) for an
  editor-like collaborator, or bulk construction from link arrays
- Forward (early times) and backward (late times) passes driven by a
  degree-counting topological frontier with cycle detection
- Explicit computation result instead of partial times on malformed input
- Optional trace sink receiving per-pass time reports
- Export to dictionaries, pandas DataFrames and Graphviz diagrams

Classes
-------
- :class:`NetworkModel`: Main class for network analysis
- :class:`_Activity`: Represents activities in the network (internal)
- :class:`_Event`: Represents events/milestones in the network (internal)

Usage Example
-------------
>>> model = NetworkModel(4, links=[[0, 0, 1, 2], [1, 2, 3, 3]],
...                      durations=[3, 2, 4, 1])
>>> model.compute_critical_path()
<Result.SUCCESS: 'success'>
>>> model.earliest_time(3), model.latest_time(2)
(7.0, 6.0)
>>> model.is_critical(0, 1)
True
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
from enum import Enum
import graphviz
import logging
import numpy as np
import pandas as pd

from .graph import WeightedDigraph

logger = logging.getLogger(__name__)

EPS = np.finfo(float).eps

#==============================================================================
class StructureError(ValueError):
    """The network can not be analysed: bad ids, endpoints, start or end."""


class CycleError(RuntimeError):
    """The network contains a cycle."""

#==============================================================================
class Result(Enum):
    """Outcome of :meth:`NetworkModel.compute_critical_path`"""
    SUCCESS          = 'success'
    CYCLE_DETECTED   = 'cycle_detected'
    STRUCTURAL_ERROR = 'structural_error'


class State(Enum):
    """Stage of the current computation"""
    UNINITIALIZED    = 'uninitialized'
    BUILT            = 'built'
    FORWARD_DONE     = 'forward_done'
    BACKWARD_DONE    = 'backward_done'
    CYCLE_DETECTED   = 'cycle_detected'
    STRUCTURAL_ERROR = 'structural_error'

#==============================================================================
def log_trace(target, times):
    """
    Trace sink writing a per-pass time report to the module logger.

    Parameters
    ----------
    target : str
        Pass name: 'early' or 'late'
    times : numpy.ndarray
        Read only array of event times indexed by event id
    """
    logger.debug("Testing %s stage", target)
    for i, t in enumerate(times):
        logger.debug("    event %d: %g", i, t)

#==============================================================================
def _reserve(late, early, duration=0.0):
    """
    Compute a time reserve with round off of insignificant values.

    Returns
    -------
    float
        ``late - early - duration`` or 0.0 if it is below the computation error
    """
    r   = late - early - duration
    err = EPS * (abs(late) + abs(early) + abs(duration))
    return float(r) if abs(r) > err else 0.0

#==============================================================================
class _Activity:
    def __init__(self, id, model, src, dst, duration=0.0, label=None):
        """
        Activity class representing a timed task in the network

        Parameters
        ----------
        id : int
            Activity position in the model
        model : NetworkModel
            Parent network model
        src : int
            Source event id
        dst : int
            Destination event id
        duration : float
            Activity duration
        label : object
            Opaque identifier owned by the caller
        """
        assert isinstance(id,       int)
        assert isinstance(model,    NetworkModel)
        assert isinstance(src,      int)
        assert isinstance(dst,      int)
        assert isinstance(duration, float)
        assert duration >= 0.0

        self.id       = id
        self.model    = model
        self.src      = src
        self.dst      = dst
        self.duration = duration
        self.label    = label

    # CPM parameters, valid after a successful computation
    @property
    def early_start(self):
        return self.model.earliest_time(self.src)

    @property
    def early_end(self):
        return self.early_start + self.duration

    @property
    def late_end(self):
        return self.model.latest_time(self.dst)

    @property
    def late_start(self):
        return self.late_end - self.duration

    @property
    def reserve(self):
        return _reserve(self.late_end, self.early_start, self.duration)

    @property
    def is_critical(self):
        return 0.0 == self.reserve

    #--------------------------------------------------------------------------
    def __repr__(self):
        return '_Activity(id=%d, src=%d, dst=%d, duration=%g, label=%r)' % (
            self.id, self.src, self.dst, self.duration, self.label)

    #--------------------------------------------------------------------------
    def to_dict(self):
        """
        Convert activity to dictionary representation

        Returns
        -------
        dict
            Dictionary with activity data
        """
        return {
            'id'         : self.id,
            'label'      : self.label,
            'src_id'     : self.src,
            'dst_id'     : self.dst,
            'duration'   : self.duration,
            # CPM things
            'early_start': self.early_start,
            'late_start' : self.late_start,
            'early_end'  : self.early_end,
            'late_end'   : self.late_end,
            'reserve'    : self.reserve,
            'critical'   : self.is_critical,
        }

#==============================================================================
class _Event:
    def __init__(self, id, model):
        """
        Event class representing a milestone in the network

        Parameters
        ----------
        id : int
            Dense event identifier, used as an index in the model arrays
        model : NetworkModel
            Parent network model
        """
        assert isinstance(id, int)
        assert isinstance(model, NetworkModel)

        self.id    = id
        self.model = model

    @property
    def in_activities(self):
        """Get all activities entering this event"""
        return [a for a in self.model.activities if a.dst == self.id]

    @property
    def out_activities(self):
        """Get all activities leaving this event"""
        return [a for a in self.model.activities if a.src == self.id]

    @property
    def early(self):
        return self.model.earliest_time(self.id)

    @property
    def late(self):
        return self.model.latest_time(self.id)

    @property
    def reserve(self):
        return self.model.reserve(self.id)

    #--------------------------------------------------------------------------
    def __repr__(self):
        return '_Event(id=%d)' % self.id

    #--------------------------------------------------------------------------
    def to_dict(self):
        return {
            'id'     : self.id,
            'early'  : self.early,
            'late'   : self.late,
            'reserve': self.reserve,
        }

#==============================================================================
class NetworkModel:
    """
    AOE network model with CPM time parameter computation.

    The model owns the event and activity collections supplied by the caller.
    Every call of :meth:`compute_critical_path` rebuilds the graph and the
    per-event scheduling state from these collections.

    Parameters
    ----------
    n_events : int, default=0
        Number of events to create with ids ``0 .. n_events - 1``
    links : various, optional
        Activity endpoints in one of the formats:

        - Two rows: ``[[src1, src2, ...], [dst1, dst2, ...]]``
        - Two columns: ``[[src1, dst1], [src2, dst2], ...]``
        - Dictionary: ``{'src': [src1, src2, ...], 'dst': [dst1, dst2, ...]}``

        A 2x2 list is read as two columns.
    durations : array-like, optional
        Activity durations, required with ``links``
    labels : sequence, optional
        Opaque activity identifiers, one per link
    trace : callable, optional
        Trace sink called as ``trace(target, times)`` after each pass
    debug : bool, default=False
        Use :func:`log_trace` as the trace sink when no ``trace`` is given

    Attributes
    ----------
    events : list
        List of _Event objects in insertion order
    activities : list
        List of _Activity objects in insertion order
    graph : WeightedDigraph or None
        Graph built by the last computation, None after an edit or a
        failed computation
    state : State
        Stage of the last computation
    error : str or None
        Failure description of the last computation
    start, end : int or None
        Ids of the starting and the final events, None after an edit or a
        failed computation

    Raises
    ------
    ValueError
        If links format is invalid or durations do not match links
    """

    def __init__(self, n_events=0, links=None, durations=None, labels=None,
                 trace=None, debug=False):
        self.debug = debug
        self.trace = trace if trace is not None else (log_trace if debug else None)

        self.events     = []
        self.activities = []

        self.graph = None
        self.state = State.UNINITIALIZED
        self.error = None
        self.start = None
        self.end   = None

        # Event registry, indexed by event id
        self._early = np.zeros((0,), dtype=float)
        self._late  = np.zeros((0,), dtype=float)
        self._n_in  = np.zeros((0,), dtype=int)
        self._n_out = np.zeros((0,), dtype=int)
        # Event ids in forward pass order
        self._order = []

        for i in range(n_events):
            self.add_event(i)

        if links is None:
            return

        lnk_src, lnk_dst = self._parse_links(links)
        if durations is None:
            raise ValueError("Durations must be provided with links")

        durations = np.asarray(durations, dtype=float)
        if len(durations) != len(lnk_src):
            raise ValueError(f"Got {len(durations)} durations for {len(lnk_src)} links")

        if labels is None:
            labels = [None] * len(lnk_src)
        elif len(labels) != len(lnk_src):
            raise ValueError(f"Got {len(labels)} labels for {len(lnk_src)} links")

        for s, d, t, l in zip(lnk_src, lnk_dst, durations, labels):
            self.add_activity(s, d, t, l)

    #--------------------------------------------------------------------------
    def _parse_links(self, links):
        """
        Parse links from various formats into source and destination arrays.

        Returns
        -------
        lnk_src, lnk_dst : numpy.ndarray
            Standardized source and destination arrays
        """
        # Format 1: Two rows [[src...], [dst...]]
        if (isinstance(links, (list, tuple)) and len(links) == 2 and
            isinstance(links[0], (list, tuple, np.ndarray)) and
            isinstance(links[1], (list, tuple, np.ndarray)) and
            len(links[0]) != 2):
            lnk_src, lnk_dst = np.asarray(links[0]), np.asarray(links[1])

        # Format 2: Two columns [[src, dst], [src, dst], ...]
        elif (isinstance(links, (list, tuple, np.ndarray)) and
              len(links) > 0 and
              isinstance(links[0], (list, tuple, np.ndarray)) and
              len(links[0]) == 2):
            lnk_src = np.asarray([item[0] for item in links])
            lnk_dst = np.asarray([item[1] for item in links])

        # Format 3: Dictionary {'src': [...], 'dst': [...]}
        elif isinstance(links, dict):
            if 'src' not in links or 'dst' not in links:
                raise ValueError("Dictionary links must contain 'src' and 'dst' keys")
            lnk_src, lnk_dst = np.asarray(links['src']), np.asarray(links['dst'])

        else:
            raise ValueError(f"Unsupported links format: {type(links)}")

        if len(lnk_src) != len(lnk_dst):
            raise ValueError("Link sources and destinations must have the same length")

        return lnk_src, lnk_dst

    #--------------------------------------------------------------------------
    def _invalidate(self):
        self.state = State.UNINITIALIZED
        self.error = None
        self.graph = None
        self.start = None
        self.end   = None

    @staticmethod
    def _as_id(value):
        """Convert an event id to int, rejecting fractional or negative values"""
        i = int(value)
        if i != value or i < 0:
            raise ValueError(f"Event id must be a non-negative integer. Got: {value!r}")
        return i

    def add_event(self, id):
        """
        Add a new event to the network.

        Ids must be assigned densely and uniquely by the caller; this is
        checked when the critical path is computed.

        Returns
        -------
        _Event
            The new event
        """
        evt = _Event(self._as_id(id), self)
        self.events.append(evt)
        self._invalidate()
        return evt

    def add_activity(self, src, dst, duration, label=None):
        """
        Add a new activity to the network.

        Parameters
        ----------
        src : int
            Source event id
        dst : int
            Destination event id
        duration : float
            Activity duration, must be non-negative
        label : object, optional
            Opaque identifier owned by the caller

        Returns
        -------
        _Activity
            The new activity
        """
        duration = float(duration)
        if not (np.isfinite(duration) and duration >= 0.0):
            raise ValueError(f"Activity duration must be finite and non-negative. Got: {duration}")

        act = _Activity(len(self.activities), self, self._as_id(src), self._as_id(dst),
                        duration, label)
        self.activities.append(act)
        self._invalidate()
        return act

    #--------------------------------------------------------------------------
    def compute_critical_path(self):
        """
        Compute early and late times of all events.

        Total run time: O(|V| + |E|).

        Returns
        -------
        Result
            ``Result.SUCCESS`` if time parameters were computed,
            ``Result.CYCLE_DETECTED`` or ``Result.STRUCTURAL_ERROR`` otherwise.
            Time queries are only valid after ``Result.SUCCESS``.

        Raises
        ------
        RuntimeError
            If internal degree bookkeeping is broken (programming error)
        """
        self._invalidate()
        try:
            self._build()
            self._compute_target('early')
            self._compute_target('late')

        except StructureError as e:
            self._invalidate()
            self.state = State.STRUCTURAL_ERROR
            self.error = str(e)
            logger.warning("Structural error: %s", e)
            return Result.STRUCTURAL_ERROR

        except CycleError as e:
            self._invalidate()
            self.state = State.CYCLE_DETECTED
            self.error = str(e)
            logger.warning("%s", e)
            return Result.CYCLE_DETECTED

        logger.debug("Project duration: %g", self._early[self.end])
        return Result.SUCCESS

    #--------------------------------------------------------------------------
    def _build(self):
        """Build the graph and the event registry, find start and end events."""
        n = len(self.events)
        if not n:
            raise StructureError("The network has no events!!!")

        ids = sorted(e.id for e in self.events)
        if ids != list(range(n)):
            raise StructureError(f"Event ids must be dense and unique in [0, {n})!!!")

        self.graph = WeightedDigraph(n)
        for a in self.activities:
            try:
                self.graph.add_edge(a.src, a.dst, a.duration)
            except IndexError as e:
                raise StructureError(f"Activity {a.id} refers to an unknown event: {e}") from e

        self._early = np.zeros((n,), dtype=float)
        self._late  = np.zeros((n,), dtype=float)
        self._n_in  = self.graph.in_degrees()
        self._n_out = self.graph.out_degrees()

        starts = np.flatnonzero(0 == self._n_in)
        ends   = np.flatnonzero(0 == self._n_out)

        if 1 != len(starts):
            raise StructureError(
                f"The project must have exactly one starting event, found {len(starts)}!!!")
        if 1 < len(ends):
            raise StructureError(
                f"The project can not have more than one final event, found {len(ends)}!!!")

        self.start = int(starts[0])
        # A network without a final event has a cycle, the forward pass reports it
        self.end   = int(ends[0]) if len(ends) else None

        self.state = State.BUILT
        logger.debug("Built %r, start=%s, end=%s", self.graph, self.start, self.end)

    #--------------------------------------------------------------------------
    def _compute_target(self, target=None):
        """
        Propagate event times through the network.

        Events are processed in topological order using a LIFO frontier:
        an event is pushed once all of its incoming (for 'early') or outgoing
        (for 'late') activities have been relaxed.

        Parameters
        ----------
        target : str
            What to compute: 'early' or 'late'

        Raises
        ------
        CycleError
            If the frontier empties before every event was processed
        StructureError
            If the final event is not set for the 'late' pass
        ValueError
            If target parameter is invalid
        """
        g = self.graph

        if 'early' == target:
            origin = self.start
            fwd    = g.successors
            n_dep  = self._n_in
            times  = self._early
            choice = max
            delta  = lambda u, v: g.weight(u, v)
            done   = State.FORWARD_DONE

        elif 'late' == target:
            # Unreachable after a successful forward pass: a network with a
            # unique start and no final event always has a cycle
            if self.end is None:
                raise StructureError("Error: end event is not set!!!")
            # Set late times starting from project completion
            times  = self._late
            times[:] = self._early[self.end]
            origin = self.end
            fwd    = g.predecessors
            n_dep  = self._n_out
            choice = min
            delta  = lambda u, v: -g.weight(v, u)
            done   = State.BACKWARD_DONE

        else:
            raise ValueError("Unknown 'target' value!!!")

        evt = [origin]
        order = []
        for _ in range(len(self.events)):
            if not evt:
                raise CycleError(f"Cycle exists in network! ({target} pass)")

            u = evt.pop()
            order.append(u)
            for v in fwd(u):
                n_dep[v] -= 1
                times[v] = choice(times[v], times[u] + delta(u, v))

                if 0 == n_dep[v]:
                    evt.append(v)
                elif n_dep[v] < 0:
                    raise RuntimeError(f"Remaining degree of event {v} is negative!!!")

        if 'early' == target:
            self._order = order

        self.state = done

        if self.trace is not None:
            report = times.copy()
            report.flags.writeable = False
            self.trace(target, report)

    #--------------------------------------------------------------------------
    def reset(self):
        """
        Restore default event times and forget the last computation result.
        """
        self._early[:] = 0.0
        self._late[:]  = 0.0
        self.state = State.UNINITIALIZED
        self.error = None

    #--------------------------------------------------------------------------
    def _check_computed(self):
        if State.BACKWARD_DONE != self.state:
            raise RuntimeError(
                f"Time parameters are not computed (state: {self.state.value})!!!")

    def _check_id(self, id):
        if not 0 <= id < len(self._early):
            raise IndexError(f"Event id {id} is out of range [0, {len(self._early)})")

    def earliest_time(self, id):
        """Get the earliest time of event ``id``"""
        self._check_computed()
        self._check_id(id)
        return float(self._early[id])

    def latest_time(self, id):
        """Get the latest time of event ``id``"""
        self._check_computed()
        self._check_id(id)
        return float(self._late[id])

    def reserve(self, id):
        """Get the time reserve of event ``id``"""
        self._check_computed()
        self._check_id(id)
        return _reserve(self._late[id], self._early[id])

    def slack(self, u, v):
        """
        Get the time reserve of activity ``(u, v)``.

        Raises
        ------
        KeyError
            If ``(u, v)`` is not an activity
        """
        self._check_computed()
        return _reserve(self._late[v], self._early[u], self.graph.weight(u, v))

    def is_critical(self, u, v):
        """Check if activity ``(u, v)`` has zero time reserve"""
        return 0.0 == self.slack(u, v)

    @property
    def project_duration(self):
        self._check_computed()
        return float(self._early[self.end])

    def critical_path(self):
        """
        Get critical activities.

        Returns
        -------
        list
            Zero reserve activities in topological order of their events
        """
        self._check_computed()
        pos = {e: i for i, e in enumerate(self._order)}
        crit = [a for a in self.activities if a.is_critical]
        return sorted(crit, key=lambda a: (pos[a.src], pos[a.dst], a.id))

    #--------------------------------------------------------------------------
    def get_activity_by_label(self, label):
        """
        Get activity by its label

        Returns
        -------
        _Activity or None
            First activity with specified label or None if not found
        """
        for activity in self.activities:
            if activity.label == label:
                return activity
        return None

    #--------------------------------------------------------------------------
    def __repr__(self):
        """String representation of the network model"""
        _repr = 'Events:{\n'
        for e in self.events:
            _repr += '        ' + str(e) + '\n'
        _repr += '}\n'

        _repr += 'Activities:{\n'
        for a in self.activities:
            _repr += '        ' + str(a) + '\n'
        _repr += '}\n'

        return _repr

    #--------------------------------------------------------------------------
    def to_dict(self):
        """
        Convert network model to dictionary representation

        Returns
        -------
        dict
            Dictionary with structure:
            {
                'activities': [list of activity dictionaries],
                'events': [list of event dictionaries sorted by id]
            }
        """
        self._check_computed()
        return {
            'activities': [a.to_dict() for a in self.activities],
            'events'    : [e.to_dict() for e in sorted(self.events, key=lambda e: e.id)],
        }

    #--------------------------------------------------------------------------
    def to_dataframe(self):
        """
        Convert network model to pandas DataFrames

        Returns
        -------
        tuple
            (activities_df, events_df) - pandas DataFrames for activities and events
        """
        model_dict = self.to_dict()

        activities_df = pd.DataFrame(model_dict['activities'],
                                     columns=['id', 'label', 'src_id', 'dst_id',
                                              'duration', 'early_start', 'late_start',
                                              'early_end', 'late_end', 'reserve',
                                              'critical'])
        events_df = pd.DataFrame(model_dict['events'],
                                 columns=['id', 'early', 'late', 'reserve'])
        events_df.set_index('id', inplace=True)

        return activities_df, events_df

    #--------------------------------------------------------------------------
    def viz(self, output_path=None):
        """
        Create Graphviz visualization of the AOE network

        Parameters
        ----------
        output_path : str, optional
            Path for saving the rendered PNG file. Nothing is rendered if None.

        Returns
        -------
        graphviz.Digraph
            Graphviz object for rendering or saving
        """
        self._check_computed()

        dot = graphviz.Digraph(node_attr={'shape': 'record', 'style': 'rounded'})
        dot.graph_attr['rankdir'] = 'LR'

        def _cl(res):
            """Choose color based on reserve (red for critical path)"""
            return '#ff0000' if 0.0 == res else '#000000'

        for e in sorted(self.events, key=lambda e: e.id):
            dot.node(str(e.id),
                     '{{%d |{%.1f|%.1f}| %.1f}}' % (e.id, e.early, e.late, e.reserve),
                     color=_cl(e.reserve))

        for a in self.activities:
            lbl = '' if a.label is None else str(a.label) + '\n'
            lbl += 't=' + format(a.duration, '.1f') + '\n r=' + format(a.reserve, '.1f')

            dot.edge(str(a.src), str(a.dst),
                     label=lbl,
                     color=_cl(a.reserve),
                     style='dashed' if a.duration == 0.0 else 'solid')

        if output_path is not None:
            dot.render(output_path, format='png', cleanup=True)

        return dot

#==============================================================================
if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG)

    print("=== Four event network ===")
    net = NetworkModel(4, links=[[0, 1], [0, 2], [1, 3], [2, 3]],
                       durations=[3, 2, 4, 1], labels=['A', 'B', 'C', 'D'],
                       debug=True)
    print(net.compute_critical_path())
    print(net)

    activities_df, events_df = net.to_dataframe()
    print(activities_df)
    print(events_df)

    print("Critical path:", [a.label for a in net.critical_path()])

    print("\n=== Network with a cycle ===")
    net = NetworkModel(3, links={'src': [0, 1, 2], 'dst': [1, 2, 1]}, durations=[1, 1, 1])
    print(net.compute_critical_path(), net.error)
