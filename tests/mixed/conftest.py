"""
Shared fixtures for mixed model tests.

Each dataset is a Table plus the Formula fit to it, alongside the
(y, X, groups) arrays that lmm() takes once the formula is encoded.
"""

import numpy as np
import pandas as pd
import pytest

from lmmscreen.core.table import Table
from lmmscreen.formula.contrasts import build_fixed_matrix
from lmmscreen.formula.terms import Formula


def _encoded(table, formula):
    fixed = build_fixed_matrix(formula, table)
    return {
        'table': table,
        'formula': formula,
        'y': table.column(formula.response.column),
        'X': fixed.X,
        'names': fixed.column_names,
        'groups': {g: table.column(g) for g in formula.group_columns},
    }


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(2024)


@pytest.fixture
def naming(rng):
    """Picture naming: latency ~ 1 + imageability + (1 | speaker).

    20 speakers x 10 pictures = 200 trials. Speaker SD 60 ms, residual
    SD 20 ms, imageability effect -25 ms per SD.
    """
    n_speakers, n_pictures = 20, 10
    speaker = np.repeat(np.arange(n_speakers), n_pictures)
    imageability = rng.normal(0, 1, len(speaker))

    latency = (
        800.0
        - 25.0 * imageability
        + rng.normal(0, 60, n_speakers)[speaker]
        + rng.normal(0, 20, len(speaker))
    )

    table = Table.from_dataframe(pd.DataFrame({
        'latency': latency,
        'speaker': [f'spk{i:02d}' for i in speaker],
        'imageability': imageability,
    }))
    d = _encoded(table, Formula.parse('latency ~ 1 + imageability + (1 | speaker)'))
    d.update(
        n_groups=n_speakers,
        beta0=800.0, beta1=-25.0,
        sigma_group=60.0, sigma_resid=20.0,
    )
    return d


@pytest.fixture
def lexical(rng):
    """Lexical decision: rt ~ 1 + freq + (1 | subject) + (1 | item).

    24 subjects x 15 items = 360 trials, fully crossed. Frequency is an
    item property, effect -30 ms per SD. Subject SD 50, item SD 30,
    residual SD 25. Each trial is also on one of 5 presentation lists,
    (subject + item) % 5, with list SD 15; the formula leaves it out.
    """
    n_subjects, n_items, n_lists = 24, 15, 5
    subject = np.repeat(np.arange(n_subjects), n_items)
    item = np.tile(np.arange(n_items), n_subjects)
    plist = (subject + item) % n_lists
    freq_by_item = rng.normal(0, 1, n_items)

    rt = (
        650.0
        - 30.0 * freq_by_item[item]
        + rng.normal(0, 50, n_subjects)[subject]
        + rng.normal(0, 30, n_items)[item]
        + rng.normal(0, 15, n_lists)[plist]
        + rng.normal(0, 25, len(subject))
    )

    table = Table.from_dataframe(pd.DataFrame({
        'rt': rt,
        'subject': [f's{i:02d}' for i in subject],
        'item': [f'i{i:02d}' for i in item],
        'list': plist,
        'freq': freq_by_item[item],
    }))
    d = _encoded(table, Formula.parse('rt ~ 1 + freq + (1 | subject) + (1 | item)'))
    d.update(
        n_subjects=n_subjects, n_items=n_items, n_lists=n_lists,
        beta0=650.0, beta1=-30.0,
    )
    return d
