"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

import numpy as np
import pytest

from src.common.deadline import VirtualClock

# AAMVA element code -> value for a complete sample license
SAMPLE_AAMVA_ELEMENTS = {
    "DCS": "SMITH",
    "DAC": "JOHN",
    "DAD": "QUINCY",
    "DBB": "01151990",
    "DBA": "01152030",
    "DBD": "01152022",
    "DAG": "123 MAIN ST",
    "DAI": "SACRAMENTO",
    "DAJ": "CA",
    "DAK": "958140000",
    "DBC": "1",
    "DAY": "BRO",
    "DAU": "070 IN",
    "DCA": "C",
    "DCB": "NONE",
    "DCD": "NONE",
}


def build_aamva_payload(elements, id_number="D1234567", extra_lines=()):
    """Serialize elements the way a PDF417 license payload is laid out."""
    lines = ["@", "\x1e", f"ANSI 636014080102DL00410278ZC03190024DLDAQ{id_number}"]
    lines += [f"{code}{value}" for code, value in elements.items()]
    lines += list(extra_lines)
    return "\n".join(lines) + "\n"


@pytest.fixture
def virtual_clock():
    """Fixture providing a manually advanced clock starting at 0ms."""
    return VirtualClock()


@pytest.fixture
def rgb_image():
    """Fixture providing a small random RGB image."""
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(24, 32, 3), dtype=np.uint8)


@pytest.fixture
def aamva_payload():
    """Fixture providing a complete AAMVA payload with two unknown elements."""
    return build_aamva_payload(
        SAMPLE_AAMVA_ELEMENTS, extra_lines=("DCFDOC123", "ZCZCAB")
    )


@pytest.fixture
def aamva_elements():
    """Fixture providing the sample element code -> value table."""
    return dict(SAMPLE_AAMVA_ELEMENTS)


@pytest.fixture
def build_payload():
    """Fixture providing the AAMVA payload serializer."""
    return build_aamva_payload
