"""
Unit tests for the distance matrix and assignment solvers
"""

import math
import os
import sys

import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from autofit.matching import (
    canonical_matching,
    distance_matrix,
    find_assignment,
    is_valid_matching,
    matched_points,
)


class TestDistanceMatrix:
    """Test cases for distance_matrix"""

    def test_euclidean_values_and_shape(self):
        """Test default Euclidean distances"""
        m = distance_matrix([(0, 0), (3, 4)], [(0, 0), (6, 8), (3, 0)])
        assert m.shape == (2, 3)
        assert m[0, 1] == pytest.approx(10.0)
        assert m[1, 0] == pytest.approx(5.0)
        assert m[1, 2] == pytest.approx(4.0)

    def test_custom_distance_function(self):
        """Test a caller-supplied distance function"""
        manhattan = lambda a, b: abs(a[0] - b[0]) + abs(a[1] - b[1])
        m = distance_matrix([(0, 0)], [(3, 4)], manhattan)
        assert m[0, 0] == pytest.approx(7.0)

    def test_empty_inputs(self):
        """Test empty point sets give an empty matrix"""
        assert distance_matrix([], [(1, 1)]).shape == (0, 1)
        assert distance_matrix([(1, 1)], []).shape == (1, 0)


class TestGreedyAssignment:
    """Test cases for the greedy assignment"""

    def test_picks_smallest_entries_first(self):
        """Test the globally smallest entry is committed first"""
        m = [[1.0, 5.0], [2.0, 0.5]]
        assert find_assignment(m, "greedy", threshold=10) == [(1, 1), (0, 0)]

    def test_greedy_is_not_globally_optimal(self):
        """Test greedy keeps the cheap pair even if the total gets worse"""
        m = [[1.0, 2.0], [2.0, 100.0]]
        assert find_assignment(m, "greedy") == [(0, 0), (1, 1)]

    def test_threshold_excludes_far_pairs(self):
        """Test entries above the threshold are never assigned"""
        m = [[1.0, 5.0], [2.0, 4.0]]
        result = find_assignment(m, "greedy", threshold=3.0)
        assert result == [(0, 0)]

    def test_nothing_within_threshold_gives_empty_result(self):
        """Test empty (not exceptional) result when nothing qualifies"""
        m = [[10.0, 20.0], [30.0, 40.0]]
        assert find_assignment(m, "greedy", threshold=3.0) == []

    @pytest.mark.parametrize("threshold", [None, 0, -1, float("nan")])
    def test_invalid_threshold_means_unbounded(self, threshold):
        """Test missing/non-positive/NaN threshold disables the bound"""
        m = [[100.0, 200.0], [300.0, 400.0]]
        assert len(find_assignment(m, "greedy", threshold=threshold)) == 2

    def test_rectangular_matrix(self):
        """Test more rows than columns"""
        m = [[1.0, 9.0], [0.5, 9.0], [9.0, 0.1]]
        result = find_assignment(m, "greedy")
        assert sorted(result) == [(1, 0), (2, 1)]

    def test_empty_matrix(self):
        assert find_assignment([], "greedy") == []
        assert find_assignment(np.zeros((3, 0)), "greedy") == []

    def test_nan_entries_are_skipped(self):
        """Test NaN distances never get assigned"""
        m = [[float("nan"), 1.0], [2.0, float("nan")]]
        assert sorted(find_assignment(m, "greedy", threshold=5)) == [(0, 1), (1, 0)]

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError, match="unknown assignment algorithm"):
            find_assignment([[1.0]], "auction")

    @pytest.mark.parametrize("seed", range(5))
    def test_assignment_invariants_on_random_matrices(self, seed):
        """Test no repeated index, threshold respected, smallest-first, maximal"""
        rng = np.random.default_rng(seed)
        m = rng.uniform(0.0, 10.0, size=(12, 9))
        threshold = 4.0
        result = find_assignment(m, "greedy", threshold=threshold)

        assert is_valid_matching(result)
        assert all(m[r, c] <= threshold for r, c in result)

        used_rows, used_cols = set(), set()
        for r, c in result:
            # each committed pair is the smallest entry still available
            available = [
                m[i, j]
                for i in range(m.shape[0])
                for j in range(m.shape[1])
                if i not in used_rows and j not in used_cols and m[i, j] <= threshold
            ]
            assert m[r, c] == pytest.approx(min(available))
            used_rows.add(r)
            used_cols.add(c)

        # nothing admissible is left over
        for i in range(m.shape[0]):
            for j in range(m.shape[1]):
                if i not in used_rows and j not in used_cols:
                    assert m[i, j] > threshold


class TestHungarianAssignment:
    """Test cases for the optimal assignment"""

    def test_minimizes_total_distance(self):
        """Test the optimal pairing differs from the greedy one"""
        m = [[1.0, 2.0], [2.0, 100.0]]
        assert sorted(find_assignment(m, "hungarian")) == [(0, 1), (1, 0)]

    def test_threshold_applied(self):
        """Test pairs above the threshold are dropped"""
        m = [[1.0, 50.0], [60.0, 70.0]]
        assert find_assignment(m, "hungarian", threshold=3.0) == [(0, 0)]

    def test_prefers_more_admissible_pairs(self):
        """Test pricing out far pairs maximizes the number of matches"""
        m = [[1.0, 2.5], [2.0, 90.0]]
        result = sorted(find_assignment(m, "hungarian", threshold=3.0))
        assert result == [(0, 1), (1, 0)]

    def test_nothing_within_threshold(self):
        assert find_assignment([[10.0]], "hungarian", threshold=1.0) == []


class TestMatchingHelpers:
    """Test cases for matching canonicalization and helpers"""

    def test_canonical_matching_sorts_by_takeoff_index(self):
        assert canonical_matching([(2, 1), (0, 2), (1, 0)]) == [(1, 0), (2, 1), (0, 2)]

    def test_canonical_matching_makes_orders_comparable(self):
        """Test two orderings of the same matching compare equal"""
        assert canonical_matching([(0, 0), (1, 1)]) == canonical_matching([(1, 1), (0, 0)])

    def test_is_valid_matching(self):
        assert is_valid_matching([(0, 1), (1, 0)])
        assert not is_valid_matching([(0, 1), (0, 0)])
        assert not is_valid_matching([(0, 1), (1, 1)])

    def test_matched_points(self):
        """Test pairs are split into index-aligned lists"""
        a, b = matched_points([(1, 0), (0, 1)], [(0, 0), (5, 5)], [(1, 1), (2, 2)])
        assert a == [(5.0, 5.0), (0.0, 0.0)]
        assert b == [(1.0, 1.0), (2.0, 2.0)]
