"""Shared fixtures: published signing keys, a simple box and an evaluation context."""

import sys
from pathlib import Path

import pytest

# tests/ sits next to the packages, so the parent is the repository root
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from ergotree.chain import ErgoBox  # noqa: E402
from ergotree.ergo_tree import p2pk  # noqa: E402
from interpreter.context import Context  # noqa: E402
from protocol.private_input import DlogProverInput  # noqa: E402

# Signing test vectors shared with the reference implementations
MESSAGE = bytes.fromhex("1dc01772ee0171f5f614c673e3c7fa1107a8cf727bdf5a6dadb379e93c0d1d00")
SK1 = 109749205800194830127901595352600384558037183218698112947062497909408298157746
SK2 = 50415569076448343263191022044468203756975150511337537963383000142821297891310
SK3 = 34648336872573478681093104997365775365807654884817677358848426648354905397359


@pytest.fixture
def message() -> bytes:
    return MESSAGE


@pytest.fixture
def sk1() -> DlogProverInput:
    return DlogProverInput(SK1)


@pytest.fixture
def sk2() -> DlogProverInput:
    return DlogProverInput(SK2)


@pytest.fixture
def sk3() -> DlogProverInput:
    return DlogProverInput(SK3)


@pytest.fixture
def p2pk_box(sk1) -> ErgoBox:
    return ErgoBox(value=1_000_000, ergo_tree=p2pk(sk1.public_image.h), creation_height=50)


@pytest.fixture
def context(p2pk_box) -> Context:
    return Context.from_boxes(height=100, self_box=p2pk_box)
