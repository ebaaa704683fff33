"""Tests for proving and verifying sigma propositions."""

import pytest

from ergotree.chain import ContextExtension, ErgoBox
from ergotree.ergo_tree import ErgoTree, p2pk
from ergotree.expr import HEIGHT, BinOp, BinOpKind, BoolToSigmaProp, Constant, CreateProveDlog, SigmaAnd
from ergotree.sigma_boolean import Cand, Cor, Cthreshold, TrivialProp
from ergotree.types import SGroupElement, SInt
from interpreter.config import EvalConfig
from interpreter.context import Context
from protocol.errors import ProverError, TreeNotSatisfiableError, VerifierError
from protocol.private_input import DhTupleProverInput, DlogProverInput
from protocol.prover import Prover, ProverResult, prove
from protocol.verifier import Verifier, verify


class TestLeaves:
    """Tests for single-leaf propositions."""

    def test_dlog(self, sk1, message) -> None:
        proof = prove(sk1.public_image, [sk1], message)
        assert len(proof) == 24 + 32
        assert verify(sk1.public_image, proof, message)

    def test_dht(self, message) -> None:
        secret = DhTupleProverInput.random()
        proof = prove(secret.public_image, [secret], message)
        assert verify(secret.public_image, proof, message)

    def test_missing_secret(self, sk1, sk2, message) -> None:
        with pytest.raises(TreeNotSatisfiableError):
            prove(sk1.public_image, [sk2], message)

    def test_fresh_nonces(self, sk1, message) -> None:
        """Two proofs of the same statement differ."""
        assert prove(sk1.public_image, [sk1], message) != prove(sk1.public_image, [sk1], message)

    def test_wrong_message(self, sk1, message) -> None:
        proof = prove(sk1.public_image, [sk1], message)
        assert not verify(sk1.public_image, proof, message + b"\x00")

    def test_wrong_key(self, sk1, sk2, message) -> None:
        proof = prove(sk1.public_image, [sk1], message)
        assert not verify(sk2.public_image, proof, message)

    def test_flipped_response(self, sk1, message) -> None:
        proof = bytearray(prove(sk1.public_image, [sk1], message))
        proof[-1] ^= 0x80
        assert not verify(sk1.public_image, bytes(proof), message)


class TestTrivial:
    """Tests for trivial propositions."""

    def test_true(self, message) -> None:
        assert prove(TrivialProp(True), [], message) == b""
        assert verify(TrivialProp(True), b"", message)

    def test_false(self, sk1, message) -> None:
        with pytest.raises(TreeNotSatisfiableError):
            prove(TrivialProp(False), [sk1], message)
        assert not verify(TrivialProp(False), b"", message)


class TestConjectures:
    """Tests for AND, OR and THRESHOLD propositions."""

    def test_and(self, sk1, sk2, message) -> None:
        prop = Cand((sk1.public_image, sk2.public_image))
        proof = prove(prop, [sk1, sk2], message)
        assert len(proof) == 24 + 32 + 32
        assert verify(prop, proof, message)

    def test_and_needs_all(self, sk1, sk2, message) -> None:
        prop = Cand((sk1.public_image, sk2.public_image))
        with pytest.raises(TreeNotSatisfiableError):
            prove(prop, [sk1], message)

    @pytest.mark.parametrize("held", [0, 1])
    def test_or(self, sk1, sk2, message, held: int) -> None:
        """Either secret proves an OR; the proof does not reveal which."""
        secrets = [sk1, sk2]
        prop = Cor((sk1.public_image, sk2.public_image))
        proof = prove(prop, [secrets[held]], message)
        assert len(proof) == 24 + 32 + 24 + 32
        assert verify(prop, proof, message)

    def test_or_with_both(self, sk1, sk2, message) -> None:
        prop = Cor((sk1.public_image, sk2.public_image))
        assert verify(prop, prove(prop, [sk1, sk2], message), message)

    def test_or_none(self, sk1, sk2, sk3, message) -> None:
        prop = Cor((sk1.public_image, sk2.public_image))
        with pytest.raises(TreeNotSatisfiableError):
            prove(prop, [sk3], message)

    def test_nested(self, sk1, sk2, sk3, message) -> None:
        """Simulated subtrees nest under real ones in both directions."""
        and_or = Cand((sk1.public_image, Cor((sk2.public_image, sk3.public_image))))
        or_and = Cor((sk1.public_image, Cand((sk2.public_image, sk3.public_image))))
        assert verify(and_or, prove(and_or, [sk1, sk3], message), message)
        assert verify(or_and, prove(or_and, [sk2, sk3], message), message)
        assert verify(or_and, prove(or_and, [sk1], message), message)

    def test_or_with_dht(self, sk1, message) -> None:
        dht = DhTupleProverInput.random()
        prop = Cor((sk1.public_image, dht.public_image))
        assert verify(prop, prove(prop, [dht], message), message)
        assert verify(prop, prove(prop, [sk1], message), message)

    @pytest.mark.parametrize("held", [(0, 1), (0, 2), (1, 2), (0, 1, 2)])
    def test_threshold(self, sk1, sk2, sk3, message, held) -> None:
        """Any two of three secrets prove a 2-of-3 threshold."""
        secrets = [sk1, sk2, sk3]
        prop = Cthreshold(2, tuple(s.public_image for s in secrets))
        proof = prove(prop, [secrets[i] for i in held], message)
        assert len(proof) == 24 + 24 + 3 * 32
        assert verify(prop, proof, message)

    def test_threshold_short(self, sk1, sk2, sk3, message) -> None:
        prop = Cthreshold(2, (sk1.public_image, sk2.public_image, sk3.public_image))
        with pytest.raises(TreeNotSatisfiableError):
            prove(prop, [sk2], message)

    def test_threshold_nested(self, sk1, sk2, sk3, message) -> None:
        """A threshold over conjunctions, with a simulated conjunction child."""
        sk4 = DlogProverInput.random()
        prop = Cthreshold(2, (
            sk1.public_image,
            Cand((sk2.public_image, sk3.public_image)),
            Cor((sk4.public_image, sk3.public_image)),
        ))
        assert verify(prop, prove(prop, [sk1, sk4], message), message)
        assert verify(prop, prove(prop, [sk2, sk3], message), message)

    def test_cross_proposition(self, sk1, sk2, message) -> None:
        """A proof for AND does not verify for OR over the same keys."""
        pks = (sk1.public_image, sk2.public_image)
        proof = prove(Cand(pks), [sk1, sk2], message)
        assert not verify(Cor(pks), proof + bytes(24), message)


class TestTreeProver:
    """Tests for proving and verifying ErgoTrees in a context."""

    def test_p2pk(self, sk1, context, p2pk_box, message) -> None:
        result = Prover([sk1]).prove(p2pk_box.ergo_tree, context, message)
        checked = Verifier().verify(p2pk_box.ergo_tree, context, result.proof, message)
        assert checked.result
        assert checked.cost > 0

    def test_height_lock(self, sk1, sk2, context, message) -> None:
        """A script mixing a height condition and a key reduces before proving."""
        pk = Constant(SGroupElement, sk2.public_image.h)
        expr = SigmaAnd((
            BoolToSigmaProp(BinOp(BinOpKind.GT, HEIGHT, Constant(SInt, 50))),
            CreateProveDlog(pk),
        ))
        tree = ErgoTree.from_expr(expr, segregate=True)
        result = Prover([sk2]).prove(tree, context, message)
        assert Verifier().verify(tree, context, result.proof, message).result
        assert not Verifier().verify(tree, context, result.proof, message[::-1]).result

    def test_unlocked_script(self, context, message) -> None:
        """A script reducing to true needs no secrets and an empty proof."""
        tree = ErgoTree.from_expr(BoolToSigmaProp(BinOp(BinOpKind.GT, HEIGHT, Constant(SInt, 1))))
        result = Prover([]).prove(tree, context, message)
        assert result.proof == b""
        assert Verifier().verify(tree, context, b"", message).result

    def test_reduction_failure(self, sk1, context, message) -> None:
        """Evaluation errors surface as prover and verifier errors."""
        div = BinOp(BinOpKind.DIVISION, HEIGHT, Constant(SInt, 0))
        tree = ErgoTree.from_expr(BoolToSigmaProp(BinOp(BinOpKind.GT, div, Constant(SInt, 1))))
        with pytest.raises(ProverError):
            Prover([sk1]).prove(tree, context, message)
        with pytest.raises(VerifierError):
            Verifier().verify(tree, context, b"", message)

    def test_cost_limit(self, sk1, context, p2pk_box, message) -> None:
        with pytest.raises(ProverError):
            Prover([sk1], EvalConfig(cost_limit=0)).prove(p2pk_box.ergo_tree, context, message)

    def test_extension_carried(self, sk1, context, p2pk_box, message) -> None:
        """The context extension travels with the proof."""
        ext = ContextExtension({1: Constant(SInt, 9)})
        result = Prover([sk1]).prove(p2pk_box.ergo_tree, context.with_extension(ext), message)
        assert result.extension == ext
        assert ProverResult.from_bytes(result.to_bytes()) == result

    def test_other_box(self, sk1, sk2, message) -> None:
        """A proof for one owner's box is rejected for another owner's box."""
        box1 = ErgoBox(value=1, ergo_tree=p2pk(sk1.public_image.h), creation_height=1)
        box2 = ErgoBox(value=1, ergo_tree=p2pk(sk2.public_image.h), creation_height=1)
        ctx1 = Context.from_boxes(height=10, self_box=box1)
        ctx2 = Context.from_boxes(height=10, self_box=box2)
        result = Prover([sk1]).prove(box1.ergo_tree, ctx1, message)
        assert not Verifier().verify(box2.ergo_tree, ctx2, result.proof, message).result
