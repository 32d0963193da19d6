from .poster_states import PosterState, TickOutcome

__all__ = ["PosterState", "TickOutcome"]
