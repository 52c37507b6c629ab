"""Tests for the two-stage depth binning."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from conftest import at, make_hole, make_samples, ten_metre_depths
from mwdprofile.aggregate.bins import BinOfBinsAggregator, SampleBinAggregator, aggregate_profile
from mwdprofile.config import INDEX_COLUMNS
from mwdprofile.features.derive import derive_features, join_samples
from mwdprofile.models.core import HoleKey


def _features(depths, **sample_kwargs):
    hole = make_hole("12", at(8, 0), at(8, 10))
    samples = pd.DataFrame(make_samples(hole, depths, **sample_kwargs))
    joined, _ = join_samples(samples, pd.DataFrame([hole]))
    return derive_features(joined)


def _fine_bins(fine_bins, **columns):
    """Hand-built Stage 1 output for one hole attempt."""
    hole = make_hole("12", at(8, 0), at(8, 10))
    n = len(fine_bins)
    frame = pd.DataFrame({k: [hole[k]] * n for k in HoleKey.columns()})
    frame["fine_bin"] = fine_bins
    frame["sample_count"] = 2
    frame["min_depth_m"] = [b * 0.2 + 0.05 for b in fine_bins]
    frame["avg_depth_m"] = [b * 0.2 + 0.1 for b in fine_bins]
    frame["max_depth_m"] = [b * 0.2 + 0.15 for b in fine_bins]
    for col in ("x", "y", "z", "avg_percussion_pressure", "avg_feeder_pressure", "avg_penetration_rate_m_per_min"):
        frame[col] = 1.0
    for col in INDEX_COLUMNS:
        frame[col] = 1.0
        frame[f"max_{col}"] = 1.0
        frame[f"std_{col}"] = 0.0
        frame[f"smoothed_{col}"] = 1.0
    frame["avg_log_hardness2"] = 0.0
    for col, values in columns.items():
        frame[col] = values
    return frame


class TestSampleBinAggregator:
    def test_bin_statistics(self):
        # rate 1.2 m/min = 20 mm/s, so hardness1 = percussion / 20
        features = _features([0.05, 0.15, 0.25], percussion=[40.0, 160.0, 100.0])
        fine = SampleBinAggregator().aggregate(features)

        assert fine["fine_bin"].tolist() == [0, 1]
        assert fine["fine_depth_m"].tolist() == [0.0, 0.2]
        assert fine["sample_count"].tolist() == [2, 1]

        first = fine.iloc[0]
        assert first["min_depth_m"] == pytest.approx(0.05)
        assert first["avg_depth_m"] == pytest.approx(0.1)
        assert first["max_depth_m"] == pytest.approx(0.15)
        assert first["hardness1"] == pytest.approx(5.0)
        assert first["max_hardness1"] == pytest.approx(8.0)
        assert first["std_hardness1"] == pytest.approx(np.sqrt(18.0))
        assert first["smoothed_hardness1"] == pytest.approx(4.0)
        assert first["avg_percussion_pressure"] == pytest.approx(100.0)

        # A single sample has no spread
        assert np.isnan(fine.iloc[1]["std_hardness1"])
        assert fine.iloc[1]["smoothed_hardness1"] == pytest.approx(5.0)

    def test_depth_on_bin_edge_goes_to_deeper_bin(self):
        fine = SampleBinAggregator().aggregate(_features([0.2, 0.4, 0.6]))
        assert fine["fine_bin"].tolist() == [1, 2, 3]

    def test_positions_interpolated_along_axis(self):
        fine = SampleBinAggregator().aggregate(_features([0.05, 0.15]))
        row = fine.iloc[0]
        assert row["x"] == pytest.approx(100.0)
        assert row["y"] == pytest.approx(200.0)
        assert row["z"] == pytest.approx(49.9)

    def test_zero_rate_bin_has_null_indices(self):
        fine = SampleBinAggregator().aggregate(_features([0.05, 0.15], rate=0.0))
        row = fine.iloc[0]
        assert row["sample_count"] == 2
        for col in INDEX_COLUMNS:
            assert np.isnan(row[col])
            assert np.isnan(row[f"smoothed_{col}"])

    def test_samples_without_depth_dropped(self):
        fine = SampleBinAggregator().aggregate(_features([0.05, np.nan, 0.15]))
        assert fine["sample_count"].sum() == 2

    def test_non_positive_values_left_out_of_smoothing(self):
        features = _features([0.05, 0.15], percussion=[0.0, 80.0])
        fine = SampleBinAggregator().aggregate(features)
        assert fine.iloc[0]["smoothed_hardness1"] == pytest.approx(4.0)
        assert fine.iloc[0]["hardness1"] == pytest.approx(2.0)

    def test_rejects_non_positive_width(self):
        with pytest.raises(ValueError):
            SampleBinAggregator(0.0)


class TestBinOfBinsAggregator:
    def test_nesting_and_counts(self):
        fine = _fine_bins([0, 1, 2, 3, 4, 5], sample_count=[3, 2, 2, 2, 1, 4])
        coarse = BinOfBinsAggregator().aggregate(fine)

        assert coarse["coarse_bin"].tolist() == [0, 1]
        assert coarse["depth_interval_m"].tolist() == [0.0, 1.0]
        assert coarse["fine_bin_count"].tolist() == [5, 1]
        assert coarse["total_sample_count"].tolist() == [10, 4]
        assert coarse["total_sample_count"].sum() == fine["sample_count"].sum()

        first = coarse.iloc[0]
        assert first["from_depth_m"] == pytest.approx(0.05)
        assert first["to_depth_m"] == pytest.approx(0.95)
        assert first["from_depth_m"] <= first["avg_depth_m"] <= first["to_depth_m"]

    def test_pooled_std(self):
        fine = _fine_bins([0, 1, 2, 3, 4], std_hardness1=[1.0, 2.0, 2.0, 1.0, 0.0])
        coarse = BinOfBinsAggregator().aggregate(fine)
        assert coarse.iloc[0]["std_hardness1"] == pytest.approx(np.sqrt(2.0))

    def test_means_of_means(self):
        fine = _fine_bins(
            [0, 1],
            sample_count=[9, 1],
            hardness1=[2.0, 4.0],
            max_hardness1=[3.0, 7.0],
            avg_penetration_rate_m_per_min=[1.0, 1.25],
        )
        row = BinOfBinsAggregator().aggregate(fine).iloc[0]
        assert row["hardness1"] == pytest.approx(3.0)
        assert row["max_hardness1"] == pytest.approx(7.0)
        assert row["avg_penetration_rate_m_per_min"] == pytest.approx(1.125)
        assert row["avg_penetration_rate_m_per_hr"] == pytest.approx(67.5)

    def test_smoothed_routes(self):
        fine = _fine_bins(
            [0, 1, 2, 3, 4],
            smoothed_hardness1=[1.0, 1.0, 4.0, 4.0, 2.0],
            smoothed_hardness2=[99.0] * 5,
            avg_log_hardness2=[np.log(2.0)] * 5,
        )
        row = BinOfBinsAggregator().aggregate(fine).iloc[0]
        assert row["smoothed_hardness1"] == pytest.approx(2.0)
        # hardness2 comes from the mean log, not from the Stage 1 smoothed values
        assert row["smoothed_hardness2"] == pytest.approx(2.0)

    def test_all_null_bin_stays_null(self):
        fine = _fine_bins(
            [0, 1],
            hardness1=[np.nan, np.nan],
            smoothed_hardness1=[np.nan, np.nan],
            std_hardness1=[np.nan, np.nan],
        )
        row = BinOfBinsAggregator().aggregate(fine).iloc[0]
        assert np.isnan(row["hardness1"])
        assert np.isnan(row["smoothed_hardness1"])
        assert np.isnan(row["std_hardness1"])
        assert row["fine_bin_count"] == 2

    def test_rejects_widths_that_do_not_nest(self):
        with pytest.raises(ValueError):
            BinOfBinsAggregator(1.0, 0.3)


class TestAggregateProfile:
    def test_ten_metre_hole(self):
        fine, coarse = aggregate_profile(_features(ten_metre_depths()))
        assert len(fine) == 50
        assert len(coarse) == 10
        assert coarse["depth_interval_m"].tolist() == [float(i) for i in range(10)]
        assert (coarse["fine_bin_count"] == 5).all()
        assert (coarse["total_sample_count"] == 10).all()
        assert coarse["total_sample_count"].sum() == 100
        assert (coarse["from_depth_m"] <= coarse["avg_depth_m"]).all()
        assert (coarse["avg_depth_m"] <= coarse["to_depth_m"]).all()

    def test_intervals_stay_within_one_attempt(self):
        first = make_hole("12", at(8, 0), at(8, 10), bit_diameter_mm=115.0)
        redrill = make_hole("12", at(9, 30), at(9, 45), bit_diameter_mm=127.0)
        samples = pd.DataFrame(make_samples(first, [0.05, 0.15]) + make_samples(redrill, [0.05]))
        joined, _ = join_samples(samples, pd.DataFrame([first, redrill]))
        _, coarse = aggregate_profile(derive_features(joined))
        assert len(coarse) == 2
        assert sorted(coarse["total_sample_count"].tolist()) == [1, 2]
