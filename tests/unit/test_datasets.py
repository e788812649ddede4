"""
Unit tests for the bundled example datasets.
"""

import pytest

from clustkit.datasets import load_iris, load_usarrests


@pytest.mark.unit
class TestDatasets:
    """Test suite for dataset loaders."""

    def test_usarrests(self):
        """Test USArrests shape, names and a known row."""
        dataset = load_usarrests()

        assert dataset.name == "usarrests"
        assert dataset.shape == (50, 4)
        assert dataset.feature_names == ["Murder", "Assault", "UrbanPop", "Rape"]
        assert dataset.row_names[0] == "Alabama"
        assert dataset.values[0].tolist() == [13.2, 236.0, 58.0, 21.2]
        assert dataset.target is None

    def test_usarrests_column_means(self):
        """Test the well known column means."""
        means = load_usarrests().values.mean(axis=0)
        assert means[0] == pytest.approx(7.788)
        assert means[1] == pytest.approx(170.76)

    def test_iris(self):
        """Test iris measurements and species labels."""
        dataset = load_iris()

        assert dataset.shape == (150, 4)
        assert len(dataset.row_names) == 150
        assert set(dataset.target.tolist()) == {0, 1, 2}
        assert dataset.target_names == ["setosa", "versicolor", "virginica"]

    def test_to_frame(self):
        """Test the DataFrame view keeps row and feature names."""
        frame = load_usarrests().to_frame()

        assert frame.shape == (50, 4)
        assert frame.index[0] == "Alabama"
        assert list(frame.columns) == ["Murder", "Assault", "UrbanPop", "Rape"]
        assert frame.loc["Alaska", "Rape"] == pytest.approx(44.5)
