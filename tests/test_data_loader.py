# tests/test_data_loader.py
import pandas as pd
import pytest

from retail_forecast.common import DataLoader, ParseError


def _write(path, text):
    path.write_text(text.strip() + "\n")
    return path


def test_load_all_reads_every_table(data_dir):
    tables = DataLoader().load_all(data_dir)

    assert set(tables) == {"sales", "stores", "transactions", "promotions", "holidays"}
    sales = tables["sales"]
    assert pd.api.types.is_datetime64_any_dtype(sales["date"])
    assert pd.api.types.is_float_dtype(sales["sales"])
    assert pd.api.types.is_integer_dtype(sales["store_nbr"])
    assert tables["holidays"]["transferred"].dtype == bool


def test_holidays_are_optional(data_dir):
    (data_dir / "holidays_events.csv").unlink()
    tables = DataLoader().load_all(data_dir)
    assert "holidays" not in tables


def test_closed_day_has_no_rows(data_dir):
    sales = DataLoader().load_sales(data_dir / "train.csv")
    assert not (sales["date"] == pd.Timestamp("2016-12-25")).any()


def test_malformed_date_raises_parse_error(tmp_path):
    path = _write(tmp_path / "train.csv", """
id,date,store_nbr,family,sales,onpromotion
0,2017-01-01,1,GROCERY I,10.5,0
1,2017-13-02,1,GROCERY I,11.0,0
""")
    with pytest.raises(ParseError) as excinfo:
        DataLoader().load_sales(path)

    message = str(excinfo.value)
    assert "train.csv" in message
    assert "'date'" in message
    assert "[3]" in message


def test_malformed_number_raises_parse_error(tmp_path):
    path = _write(tmp_path / "train.csv", """
id,date,store_nbr,family,sales,onpromotion
0,2017-01-01,1,GROCERY I,10.5,0
1,2017-01-02,1,GROCERY I,abc,0
""")
    with pytest.raises(ParseError, match="sales"):
        DataLoader().load_sales(path)


def test_empty_number_is_not_silently_nan(tmp_path):
    path = _write(tmp_path / "transactions.csv", """
date,store_nbr,transactions
2017-01-01,1,
""")
    with pytest.raises(ParseError, match="transactions"):
        DataLoader().load_transactions(path)


def test_fractional_integer_raises_parse_error(tmp_path):
    path = _write(tmp_path / "stores.csv", """
store_nbr,city,state,type,cluster
1,Quito,Pichincha,D,1.5
""")
    with pytest.raises(ParseError, match="cluster"):
        DataLoader().load_stores(path)


def test_missing_column_raises_parse_error(tmp_path):
    path = _write(tmp_path / "transactions.csv", """
date,store_nbr
2017-01-01,1
""")
    with pytest.raises(ParseError, match="missing required columns"):
        DataLoader().load_transactions(path)


def test_duplicate_key_raises_parse_error(tmp_path):
    path = _write(tmp_path / "transactions.csv", """
date,store_nbr,transactions
2017-01-01,1,100
2017-01-01,1,120
""")
    with pytest.raises(ParseError, match="duplicate key"):
        DataLoader().load_transactions(path)


def test_malformed_boolean_in_holidays(tmp_path):
    path = _write(tmp_path / "holidays_events.csv", """
date,type,locale,locale_name,description,transferred
2017-01-01,Holiday,National,Ecuador,Primer dia del ano,maybe
""")
    with pytest.raises(ParseError, match="transferred"):
        DataLoader().load_holidays(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        DataLoader().load_sales(tmp_path / "missing.csv")


def test_date_format_comes_from_config(tmp_path):
    config = _write(tmp_path / "settings.yaml", """
data:
  date_format: "%d/%m/%Y"
""")
    path = _write(tmp_path / "transactions.csv", """
date,store_nbr,transactions
31/01/2017,1,100
""")
    loader = DataLoader(config_path=str(config))
    df = loader.load_transactions(path)

    assert df.loc[0, "date"] == pd.Timestamp("2017-01-31")
    assert loader.config["data"]["min_data_points"] == 30


def test_validate_data_reports_short_tables(data_dir):
    loader = DataLoader()
    sales = loader.load_sales(data_dir / "train.csv")

    is_valid, report = loader.validate_data(sales, schema="sales")
    assert is_valid
    assert report["statistics"]["n_rows"] == len(sales)

    is_valid, report = loader.validate_data(sales.head(5), schema="sales")
    assert not is_valid
    assert any("Insufficient data" in e for e in report["errors"])


def test_validate_data_warns_on_negative_sales(data_dir):
    loader = DataLoader()
    sales = loader.load_sales(data_dir / "train.csv")
    sales.loc[0, "sales"] = -1.0

    _, report = loader.validate_data(sales, schema="sales")
    assert any("negative sales" in w for w in report["warnings"])


def test_data_summary_describes_sales_table(data_dir):
    sales = DataLoader().load_sales(data_dir / "train.csv")
    summary = DataLoader().get_data_summary(sales)

    assert summary["n_rows"] == len(sales)
    assert summary["categorical_summary"]["family"]["unique_values"] == 2
    assert "sales" in summary["numeric_summary"]
    assert summary["date_range"][0] == sales["date"].min()


def test_validate_data_flags_sparse_joined_transactions():
    dates = pd.date_range("2017-01-01", periods=40, freq="D")
    series = pd.DataFrame({
        "date": dates,
        "sales": [10.0] * 40,
        "transactions": [100.0] * 10 + [float("nan")] * 30,
    })

    is_valid, report = DataLoader().validate_data(series, required_columns=["date", "sales"])
    assert is_valid
    assert any("'transactions'" in w for w in report["warnings"])

    is_valid, report = DataLoader().validate_data(series, required_columns=["date", "onpromotion"])
    assert not is_valid
    assert any("onpromotion" in e for e in report["errors"])
