import pandas as pd
import pytest

from titanic_survival.data_loader import DataLoader, normalize_column_name
from titanic_survival.errors import DataFormatError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("PassengerId", "passenger_id"),
        ("SibSp", "sib_sp"),
        ("Pclass", "pclass"),
        (" Ticket No ", "ticket_no"),
        ("survived", "survived"),
    ],
)
def test_normalize_column_name(raw, expected):
    assert normalize_column_name(raw) == expected


def test_data_loader_normalizes_columns_and_keeps_mapping(tmp_path, make_raw_passengers):
    csv_path = tmp_path / "train.csv"
    make_raw_passengers(20).to_csv(csv_path, index=False)

    loader = DataLoader(path=str(csv_path), required_cols=["passenger_id", "survived"])
    df = loader.load()

    assert "passenger_id" in df.columns and "sib_sp" in df.columns
    assert loader.column_map_["passenger_id"] == "PassengerId"
    assert loader.column_map_["survived"] == "Survived"
    assert len(df) == 20


def test_sampling_is_seeded_and_keeps_normalized_names(tmp_path, make_raw_passengers):
    csv_path = tmp_path / "train.csv"
    make_raw_passengers(100).to_csv(csv_path, index=False)

    first = DataLoader(path=str(csv_path), sample_size=15, random_state=3)
    again = DataLoader(path=str(csv_path), sample_size=15, random_state=3)
    other = DataLoader(path=str(csv_path), sample_size=15, random_state=4)
    s1, s2, s3 = first.load(), again.load(), other.load()

    assert s1["passenger_id"].tolist() == s2["passenger_id"].tolist()
    assert set(s1["passenger_id"]) != set(s3["passenger_id"])
    assert list(s1.columns) == [normalize_column_name(c) for c in first.column_map_.values()]
    assert first.column_map_["sib_sp"] == "SibSp"


def test_data_loader_missing_required_column_raises(tmp_path):
    csv_path = tmp_path / "test.csv"
    pd.DataFrame({"PassengerId": [1, 2], "Sex": ["male", "female"]}).to_csv(csv_path, index=False)

    with pytest.raises(DataFormatError, match="survived"):
        DataLoader(path=str(csv_path), required_cols=["passenger_id", "survived"]).load()


def test_data_loader_rejects_colliding_names(tmp_path):
    csv_path = tmp_path / "dup.csv"
    pd.DataFrame({"SibSp": [1], "sib_sp": [2]}).to_csv(csv_path, index=False)

    with pytest.raises(DataFormatError, match="collide"):
        DataLoader(path=str(csv_path)).load()


def test_data_loader_empty_file_raises(tmp_path):
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("")

    with pytest.raises(DataFormatError):
        DataLoader(path=str(csv_path)).load()
