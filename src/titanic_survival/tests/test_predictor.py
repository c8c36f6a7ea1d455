import pandas as pd
import pytest

from titanic_survival.errors import DataFormatError, TransformStateMismatchError
from titanic_survival.feature_transformer import FeatureTransformer
from titanic_survival.model_trainer import ModelTrainer
from titanic_survival.models import get_model_spec
from titanic_survival.predictor import Predictor


@pytest.fixture
def fitted(make_passengers):
    train = make_passengers(300, seed=4)
    transformer = FeatureTransformer().fit(train.drop(columns=["survived"]))
    data = transformer.transform(train).assign(survived=train["survived"].to_numpy())
    trained = ModelTrainer(n_splits=3).train(data, "survived", get_model_spec("logistic_regression"))
    return trained, transformer.state_


def test_predict_preserves_row_order_and_ids(fitted, make_passengers):
    trained, state = fitted
    test = make_passengers(50, seed=5, labelled=False, first_id=900)
    shuffled = test.sample(frac=1.0, random_state=1)

    predictions = Predictor(trained, state).predict(shuffled, id_col="passenger_id")

    assert list(predictions.columns) == ["passenger_id", "survived"]
    assert predictions["passenger_id"].tolist() == shuffled["passenger_id"].tolist()
    assert set(predictions["survived"]) <= {0, 1}

    # row i of the shuffled output equals the prediction for that passenger
    by_id = Predictor(trained, state).predict(test, id_col="passenger_id").set_index("passenger_id")
    assert (by_id.loc[predictions["passenger_id"], "survived"].to_numpy()
            == predictions["survived"].to_numpy()).all()


def test_predict_uses_state_attached_to_model(fitted, make_passengers):
    trained, state = fitted
    trained.transform_state = state
    test = make_passengers(10, seed=6, labelled=False)

    predictions = Predictor(trained).predict(test, id_col="passenger_id")
    assert len(predictions) == 10


def test_missing_state_raises(fitted):
    trained, _ = fitted
    trained.transform_state = None
    with pytest.raises(TransformStateMismatchError):
        Predictor(trained)


def test_missing_id_column_raises(fitted, make_passengers):
    trained, state = fitted
    test = make_passengers(5, seed=7, labelled=False).drop(columns=["passenger_id"])
    with pytest.raises(DataFormatError):
        Predictor(trained, state).predict(test, id_col="passenger_id")


def test_write_submission_uses_source_headers(tmp_path, fitted, make_passengers):
    trained, state = fitted
    predictor = Predictor(trained, state)
    predictions = predictor.predict(make_passengers(12, seed=8, labelled=False), id_col="passenger_id")

    path = predictor.write_submission(
        predictions, str(tmp_path / "out" / "submission.csv"), ["PassengerId", "Survived"]
    )
    written = pd.read_csv(path)
    assert list(written.columns) == ["PassengerId", "Survived"]
    assert len(written) == 12


def test_header_only_test_file_gives_empty_predictions(fitted, make_passengers):
    trained, state = fitted
    test = make_passengers(5, seed=9, labelled=False).iloc[:0]

    predictions = Predictor(trained, state).predict(test, id_col="passenger_id")
    assert list(predictions.columns) == ["passenger_id", "survived"]
    assert len(predictions) == 0
