from .schemas import CellResult, Grid, GridEntry, TunerStatus
from .grid import grid_explicit, grid_random, grid_regular, tunable_space
from .tuner import (
    LastFit,
    TieBreak,
    Tuner,
    TuningResults,
    fit_resamples,
    last_fit,
    tune_grid,
    tune_iterative,
)
