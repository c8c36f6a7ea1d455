import numpy as np
import pandas as pd
import pytest

from titanic_survival.data_loader import normalize_column_name

RAW_COLUMNS = [
    "PassengerId", "Survived", "Pclass", "Name", "Sex", "Age",
    "SibSp", "Parch", "Ticket", "Fare", "Cabin", "Embarked",
]


def _make_raw(n_rows: int, seed: int, labelled: bool, first_id: int) -> pd.DataFrame:
    rng = np.random.RandomState(seed)

    pclass = rng.choice([1, 2, 3], size=n_rows, p=[0.25, 0.2, 0.55])
    sex = rng.choice(["male", "female"], size=n_rows, p=[0.65, 0.35])
    age = np.round(rng.gamma(shape=6.0, scale=5.0, size=n_rows) + 0.5, 1)
    age[rng.rand(n_rows) < 0.2] = np.nan
    fare = np.round(rng.lognormal(mean=3.5 - 0.6 * pclass, sigma=0.8), 2)
    fare[rng.rand(n_rows) < 0.02] = 0.0
    decks = rng.choice(list("ABCDEF"), size=n_rows)
    cabin = np.array([f"{d}{rng.randint(1, 120)}" for d in decks], dtype=object)
    cabin[rng.rand(n_rows) < 0.75] = None
    embarked = rng.choice(["S", "C", "Q"], size=n_rows, p=[0.7, 0.2, 0.1]).astype(object)
    embarked[rng.rand(n_rows) < 0.01] = None

    df = pd.DataFrame(
        {
            "PassengerId": np.arange(first_id, first_id + n_rows),
            "Pclass": pclass,
            "Name": [f"Passenger {i}, Mr. Test" for i in range(n_rows)],
            "Sex": sex,
            "Age": age,
            "SibSp": rng.poisson(0.5, size=n_rows),
            "Parch": rng.poisson(0.4, size=n_rows),
            "Ticket": [f"T{rng.randint(10000, 99999)}" for _ in range(n_rows)],
            "Fare": fare,
            "Cabin": cabin,
            "Embarked": embarked,
        }
    )
    if labelled:
        logit = 1.2 * (sex == "female") - 0.8 * (pclass - 2) - 0.6
        survived = (rng.rand(n_rows) < 1 / (1 + np.exp(-2.0 * logit))).astype(int)
        df.insert(1, "Survived", survived)
    return df


@pytest.fixture
def make_raw_passengers():
    """Factory for Titanic-like frames with the original Kaggle headers."""
    def factory(n_rows=200, seed=0, labelled=True, first_id=1):
        return _make_raw(n_rows, seed, labelled, first_id)
    return factory


@pytest.fixture
def make_passengers(make_raw_passengers):
    """Same as make_raw_passengers, with normalized column names."""
    def factory(n_rows=200, seed=0, labelled=True, first_id=1):
        df = make_raw_passengers(n_rows, seed, labelled, first_id)
        return df.rename(columns=normalize_column_name)
    return factory


@pytest.fixture
def feature_data(make_passengers):
    """Transformed training matrix with the label attached."""
    from titanic_survival.feature_transformer import FeatureTransformer

    def factory(n_rows=300, seed=0):
        df = make_passengers(n_rows, seed)
        X = FeatureTransformer().fit_transform(df.drop(columns=["survived"]))
        return X.assign(survived=df["survived"].to_numpy())
    return factory
