#!/usr/bin/env python3
"""
Unit tests for the distribution kernels.

This module tests the in-place stochastic transformations and the
softmax with implicit zero category.
"""

import unittest
import torch
from pathlib import Path
import sys

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from bmsampler.models.utils import (
    sigm,
    bernoulli_,
    binomial2_,
    sigm_bernoulli_,
    gaussian_noise_,
    softmax0_,
    categorical0_,
    check_ranges,
)
from bmsampler.sampling.api import seeded_generator
from tests import TEST_CONFIG


class TestElementwiseDraws(unittest.TestCase):
    """Test cases for Bernoulli, Binomial(2, p) and Gaussian draws."""

    def setUp(self):
        """Set up test fixtures."""
        self.generator = seeded_generator(TEST_CONFIG['random_seed'])

    def test_sigm(self):
        """Test scalar and tensor logistic function."""
        self.assertEqual(sigm(0.0), 0.5)
        self.assertAlmostEqual(sigm(2.0), 1.0 / (1.0 + torch.exp(torch.tensor(-2.0)).item()), places=6)

        x = torch.tensor([-1.0, 0.0, 3.0], dtype=torch.float64)
        expected = 1.0 / (1.0 + torch.exp(-x))
        self.assertTrue(torch.allclose(sigm(x), expected))

    def test_bernoulli_values(self):
        """Test that Bernoulli draws are binary and respect extreme probabilities."""
        x = torch.rand(50, 7, dtype=torch.float64, generator=self.generator)
        result = bernoulli_(x, self.generator)

        self.assertIs(result, x)
        self.assertTrue(torch.all((x == 0) | (x == 1)))

        ones = bernoulli_(torch.ones(10, 3, dtype=torch.float64), self.generator)
        zeros = bernoulli_(torch.zeros(10, 3, dtype=torch.float64), self.generator)
        self.assertTrue(torch.all(ones == 1))
        self.assertTrue(torch.all(zeros == 0))

    def test_bernoulli_on_view(self):
        """Test in-place draw on a column slice."""
        x = torch.full((20, 4), 0.5, dtype=torch.float64)
        bernoulli_(x[:, 1:3], self.generator)

        self.assertTrue(torch.all(x[:, [0, 3]] == 0.5))
        self.assertTrue(torch.all((x[:, 1:3] == 0) | (x[:, 1:3] == 1)))

    def test_binomial2_values_and_mean(self):
        """Test that Binomial(2, p) draws lie in {0, 1, 2} with mean 2p."""
        n = TEST_CONFIG['statistical_size']
        x = torch.full((n, 5), 0.3, dtype=torch.float64)
        binomial2_(x, self.generator)

        self.assertTrue(torch.all((x == 0) | (x == 1) | (x == 2)))
        self.assertAlmostEqual(x.mean().item(), 0.6, delta=0.02)

    def test_sigm_bernoulli(self):
        """Test Bernoulli sampling from total input."""
        x = torch.tensor([[-50.0, 50.0]], dtype=torch.float64).repeat(10, 1)
        sigm_bernoulli_(x, self.generator)

        self.assertTrue(torch.all(x[:, 0] == 0))
        self.assertTrue(torch.all(x[:, 1] == 1))

    def test_gaussian_noise(self):
        """Test Gaussian noise scaled per column."""
        n = TEST_CONFIG['statistical_size']
        sd = torch.tensor([0.5, 3.0], dtype=torch.float64)
        x = torch.zeros(n, 2, dtype=torch.float64)
        gaussian_noise_(x, sd, self.generator)

        self.assertTrue(torch.allclose(x.std(dim=0), sd, rtol=0.05))
        self.assertTrue(torch.allclose(x.mean(dim=0), torch.zeros(2, dtype=torch.float64), atol=0.1))

    def test_reproducible_draws(self):
        """Test that equal seeds give equal draws."""
        x1 = torch.full((30, 6), 0.4, dtype=torch.float64)
        x2 = x1.clone()
        binomial2_(x1, seeded_generator(7))
        binomial2_(x2, seeded_generator(7))

        self.assertTrue(torch.equal(x1, x2))


class TestSoftmax0(unittest.TestCase):
    """Test cases for the softmax with implicit zero category."""

    def test_matches_softmax_with_zero(self):
        """Test equivalence to the softmax of the input extended by 0."""
        x = torch.tensor([0.5, -1.0, 2.0], dtype=torch.float64)
        expected = torch.softmax(torch.cat([x, torch.zeros(1, dtype=torch.float64)]), dim=0)[:-1]

        result = softmax0_(x.clone())
        self.assertTrue(torch.allclose(result, expected))

    def test_probability_mass(self):
        """Test that explicit and implicit mass sum to one."""
        for values in ([0.0], [3.0, -2.0, 1.0], [1000.0, -1000.0, 500.0], [-30.0, -40.0]):
            x = torch.tensor(values, dtype=torch.float64)
            m = x.max()
            implicit = torch.exp(-m) / (torch.exp(x - m).sum() + torch.exp(-m))

            result = softmax0_(x.clone())
            self.assertTrue(torch.all(torch.isfinite(result)))
            self.assertTrue(torch.all(result >= 0))
            self.assertAlmostEqual((result.sum() + implicit).item(), 1.0, places=10)

    def test_large_negative_input(self):
        """Test that very negative input puts all mass on the implicit category."""
        x = torch.tensor([-800.0, -900.0], dtype=torch.float64)
        result = softmax0_(x)

        self.assertTrue(torch.all(torch.isfinite(result)))
        self.assertAlmostEqual(result.sum().item(), 0.0, places=10)

    def test_rows_and_groups(self):
        """Test row-wise and group-wise transformation of matrices."""
        x = torch.randn(4, 5, dtype=torch.float64)
        varranges = [range(0, 2), range(2, 5)]

        result = softmax0_(x.clone(), varranges)
        for varrange in varranges:
            cols = slice(varrange.start, varrange.stop)
            expected = softmax0_(x[:, cols].clone())
            self.assertTrue(torch.allclose(result[:, cols], expected))
            self.assertTrue(torch.all(result[:, cols].sum(dim=1) < 1.0))


class TestCategorical0(unittest.TestCase):
    """Test cases for categorical draws with implicit zero category."""

    def setUp(self):
        """Set up test fixtures."""
        self.generator = seeded_generator(TEST_CONFIG['random_seed'])
        self.varranges = [range(0, 2), range(2, 5)]

    def test_one_hot_or_zero(self):
        """Test that each group has at most one active node."""
        x = softmax0_(torch.randn(200, 5, dtype=torch.float64, generator=self.generator),
                      self.varranges)
        categorical0_(x, self.varranges, self.generator)

        self.assertTrue(torch.all((x == 0) | (x == 1)))
        for varrange in self.varranges:
            group_sums = x[:, varrange.start:varrange.stop].sum(dim=1)
            self.assertTrue(torch.all(group_sums <= 1))

    def test_deterministic_cases(self):
        """Test certain category and certain implicit category."""
        x = torch.tensor([[1.0, 0.0, 0.0, 0.0, 0.0]], dtype=torch.float64).repeat(20, 1)
        categorical0_(x, self.varranges, self.generator)

        self.assertTrue(torch.all(x[:, 0] == 1))
        self.assertTrue(torch.all(x[:, 1:] == 0))

    def test_frequencies(self):
        """Test that category frequencies follow the probabilities."""
        n = TEST_CONFIG['statistical_size']
        x = torch.tensor([[0.2, 0.5]], dtype=torch.float64).repeat(n, 1)
        categorical0_(x, [range(0, 2)], self.generator)

        freqs = x.mean(dim=0)
        self.assertAlmostEqual(freqs[0].item(), 0.2, delta=0.02)
        self.assertAlmostEqual(freqs[1].item(), 0.5, delta=0.02)
        self.assertAlmostEqual(1.0 - x.sum(dim=1).mean().item(), 0.3, delta=0.02)

    def test_vector(self):
        """Test draw for a single sample."""
        x = torch.tensor([0.0, 1.0, 0.3, 0.3, 0.3], dtype=torch.float64)
        categorical0_(x, self.varranges, self.generator)

        self.assertEqual(x.shape, (5,))
        self.assertEqual(x[1].item(), 1.0)
        self.assertLessEqual(x[2:].sum().item(), 1.0)


class TestCheckRanges(unittest.TestCase):
    """Test cases for range validation."""

    def test_valid_ranges(self):
        """Test ranges and index lists partitioning the nodes."""
        ranges = check_ranges([range(0, 2), [2, 3, 4]], 5)
        self.assertEqual(ranges, [range(0, 2), range(2, 5)])

    def test_invalid_ranges(self):
        """Test gaps, overlaps, empty ranges and incomplete coverage."""
        with self.assertRaises(ValueError):
            check_ranges([range(0, 2), range(3, 5)], 5)
        with self.assertRaises(ValueError):
            check_ranges([range(0, 3), range(2, 5)], 5)
        with self.assertRaises(ValueError):
            check_ranges([range(0, 0), range(0, 5)], 5)
        with self.assertRaises(ValueError):
            check_ranges([range(0, 4)], 5)
        with self.assertRaises(ValueError):
            check_ranges([[0, 2]], 3)


if __name__ == '__main__':
    unittest.main()
