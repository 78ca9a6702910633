"""
BMSampler Test Suite

This package contains tests for all BMSampler components.

Test Structure:
- test_kernels.py: Tests for the distribution kernels
- test_models.py: Tests for layer pairs, partitioned RBMs and DBMs
- test_sampling.py: Tests for particles, Gibbs sampling and sampling entry points
- test_config.py: Tests for configuration management

Usage:
    # Run all tests
    python -m pytest tests

    # Run specific test module with unittest
    python -m unittest tests.test_models
"""

import sys
import warnings
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Suppress warnings during testing
warnings.filterwarnings('ignore', category=UserWarning)
warnings.filterwarnings('ignore', category=FutureWarning)

# Test configuration
TEST_CONFIG = {
    'random_seed': 42,
    'small_data_size': 50,
    'medium_data_size': 500,
    'large_data_size': 1000,
    'statistical_size': 20000,
    'rate_tolerance': 0.07,
    'tolerance': 1e-10,
}

# Make config available to test modules
__all__ = ['TEST_CONFIG']
