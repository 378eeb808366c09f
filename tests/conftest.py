"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np
import pandas as pd

from lmmscreen.core.table import Table


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


def reading_experiment(seed: int) -> pd.DataFrame:
    """Reading-time experiment with three crossed grouping factors.

    16 subjects x 12 words = 192 trials. Each trial also falls in one of
    6 sentence frames, crossed with both subject and word.

    Predictors:
        freq       word-level, true effect -40 ms per SD
        length     word-level, no effect
        condition  3-level factor (a, b, c), effects 0 / +20 / -10 ms
        trial      presentation position within subject, no effect
    """
    rng = np.random.default_rng(seed)
    n_subjects, n_words, n_sentences = 16, 12, 6

    subject = np.repeat(np.arange(n_subjects), n_words)
    word = np.tile(np.arange(n_words), n_subjects)
    sentence = (subject + word) % n_sentences
    n = len(subject)

    freq_by_word = rng.normal(0, 1, n_words)
    length_by_word = rng.integers(3, 10, n_words).astype(float)
    condition = np.array(['a', 'b', 'c'])[(subject + 2 * word) % 3]
    trial = np.tile(rng.permutation(n_words), n_subjects).astype(float)

    cond_effect = {'a': 0.0, 'b': 20.0, 'c': -10.0}
    rt = (
        600.0
        + rng.normal(0, 40, n_subjects)[subject]
        + rng.normal(0, 25, n_words)[word]
        + rng.normal(0, 15, n_sentences)[sentence]
        - 40.0 * freq_by_word[word]
        + np.array([cond_effect[c] for c in condition])
        + rng.normal(0, 30, n)
    )

    return pd.DataFrame({
        'rt': rt,
        'subject': [f's{i:02d}' for i in subject],
        'word': [f'w{i:02d}' for i in word],
        'sentence': sentence,
        'freq': freq_by_word[word],
        'length': length_by_word[word],
        'condition': condition,
        'trial': trial,
    })


@pytest.fixture
def trials_frame():
    return reading_experiment(20240917)


@pytest.fixture
def make_trials_frame():
    """The reading-time experiment generator, for tests that vary the seed."""
    return reading_experiment


@pytest.fixture
def trials(trials_frame):
    """The reading-time experiment as a Table."""
    return Table.from_dataframe(trials_frame)


@pytest.fixture
def baseline_text():
    return 'rt ~ 1 + (1 | subject) + (1 | word) + (1 | sentence)'
