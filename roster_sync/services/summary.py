from __future__ import annotations

from ..models.session_state import SessionState
from .view import DerivedView

"""SUMMARY line rendering for the derived view.

Format:
SUMMARY total={n} logged_in={n} logged_out={n} units={n} source={load_source} last_updated={label}
"""


def render_summary_line(view: DerivedView, state: SessionState) -> str:
    """Render a SUMMARY line from the derived view aggregates.

    ``last_updated`` is ``-`` when the set has never been published (sample data).

    Examples:
        >>> from roster_sync.models.session_state import LoadSource
        >>> from roster_sync.services.view import DerivedView, RosterStats
        >>> state = SessionState(load_source=LoadSource.SAMPLE_UNCONFIGURED)
        >>> render_summary_line(DerivedView((), RosterStats(0, 0, 0, 0)), state)
        'SUMMARY total=0 logged_in=0 logged_out=0 units=0 source=sample_unconfigured last_updated=-'
    """
    stats = view.stats
    source = state.load_source.value if state.load_source is not None else "none"
    return (
        f"SUMMARY total={stats.total} "
        f"logged_in={stats.logged_in} "
        f"logged_out={stats.logged_out} "
        f"units={stats.units} "
        f"source={source} "
        f"last_updated={state.last_updated or '-'}"
    )
