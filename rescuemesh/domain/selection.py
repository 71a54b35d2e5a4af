"""
Route selection state machine.

Two modes:

* **auto**   -- after each routing pass the top-urgency route is offered;
  it replaces the selection when nothing is selected or when it is strictly
  shorter by road.
* **manual** -- the selection only moves on explicit ``select`` / ``clear``.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .entities import RankedRoute


class RouteSelector:
    def __init__(self, auto: bool = True):
        self.auto = auto
        self.selected: Optional[RankedRoute] = None

    def offer(self, routes: Sequence[RankedRoute]) -> bool:
        """Apply the auto policy to a fresh pass.  Returns True on change."""
        if not self.auto or not routes:
            return False
        candidate = routes[0]
        if self.selected is None or candidate.road_distance < self.selected.road_distance:
            self.selected = candidate
            return True
        return False

    def select(self, route: RankedRoute) -> None:
        self.selected = route

    def clear(self) -> None:
        self.selected = None
