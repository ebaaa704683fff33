"""Tests for the expression tree codec."""

import pytest

from ergotree.errors import DecodeError, TypeCheckError
from ergotree.expr import (
    HEIGHT,
    SELF_BOX,
    BinOp,
    BinOpKind,
    BlockValue,
    BoolToSigmaProp,
    ByIndex,
    Collection,
    Constant,
    ConstantPlaceholder,
    CreateProveDlog,
    ExtractAmount,
    Fold,
    FuncValue,
    If,
    MethodCall,
    PropertyCall,
    SelectField,
    SigmaAnd,
    SizeOf,
    Tuple,
    ValDef,
    ValUse,
    eq,
    plus,
)
from ergotree.methods import find_method
from ergotree.opcodes import OpCode
from ergotree.serialization import ConstantStore, expr_from_bytes, expr_to_bytes
from ergotree.types import SBoolean, SColl, SGroupElement, SInt, SLong, STuple
from primitives.group import GroupElement


def _int(n: int) -> Constant:
    return Constant(SInt, n)


class TestEncoding:
    """Tests for the byte layout of individual nodes."""

    def test_plus(self) -> None:
        """A binary operator is its opcode followed by both operands."""
        data = expr_to_bytes(plus(_int(1), _int(2)))
        assert data == bytes([OpCode.PLUS, 0x04, 0x02, 0x04, 0x04])

    def test_constant_has_no_opcode(self) -> None:
        """A constant is written as type code and data only."""
        assert expr_to_bytes(_int(-1)) == bytes([0x04, 0x01])

    def test_global(self) -> None:
        """Context globals are a bare opcode."""
        assert expr_to_bytes(HEIGHT) == bytes([OpCode.HEIGHT])

    def test_bool_collection(self) -> None:
        """A collection of Boolean constants is packed into bits."""
        coll = Collection(SBoolean, tuple(Constant(SBoolean, b) for b in (True, False, True)))
        data = expr_to_bytes(coll)
        assert data == bytes([OpCode.COLL_OF_BOOL_CONST, 3, 0b101])
        assert expr_from_bytes(data) == coll

    def test_bool_bin_op(self) -> None:
        """A logical operator over two Boolean constants packs them as bits."""
        node = BinOp(BinOpKind.BIN_AND, Constant(SBoolean, True), Constant(SBoolean, False))
        data = expr_to_bytes(node)
        assert data == bytes([OpCode.BIN_AND, OpCode.COLL_OF_BOOL_CONST, 0b01])
        assert expr_from_bytes(data) == node

    def test_parse_true_opcode(self) -> None:
        """The TRUE and FALSE opcodes parse to Boolean constants."""
        assert expr_from_bytes(bytes([OpCode.TRUE])) == Constant(SBoolean, True)
        assert expr_from_bytes(bytes([OpCode.FALSE])) == Constant(SBoolean, False)


class TestRoundTrip:
    """Tests that parsing restores the written tree."""

    def test_block(self) -> None:
        """A block binding HEIGHT restores the ValUse type from its ValDef."""
        block = BlockValue((ValDef(0, HEIGHT),), plus(ValUse(0, SInt), _int(1)))
        assert expr_from_bytes(expr_to_bytes(block)) == block

    def test_fold(self) -> None:
        """A fold with a tuple-typed lambda argument round-trips."""
        pair = STuple((SInt, SInt))
        arg = ValUse(1, pair)
        fold = Fold(
            Constant(SColl(SInt), (1, 2, 3)),
            _int(0),
            FuncValue(((1, pair),), plus(SelectField(arg, 1), SelectField(arg, 2))),
        )
        assert expr_from_bytes(expr_to_bytes(fold)) == fold

    def test_if_and_tuple(self) -> None:
        """Control flow and tuples round-trip."""
        node = If(eq(HEIGHT, _int(10)), Tuple((_int(1), HEIGHT)), Tuple((HEIGHT, _int(2))))
        assert expr_from_bytes(expr_to_bytes(node)) == node

    def test_by_index_default(self) -> None:
        """The optional ByIndex default is flagged by a presence byte."""
        coll = Constant(SColl(SInt), (5, 6))
        with_default = ByIndex(coll, _int(3), _int(0))
        without = ByIndex(coll, _int(0))
        assert expr_from_bytes(expr_to_bytes(with_default)) == with_default
        assert expr_from_bytes(expr_to_bytes(without)) == without

    def test_sigma_nodes(self) -> None:
        """Sigma combinators over computed propositions round-trip."""
        pk = Constant(SGroupElement, GroupElement.generator())
        node = SigmaAnd((CreateProveDlog(pk), BoolToSigmaProp(eq(HEIGHT, _int(1)))))
        assert expr_from_bytes(expr_to_bytes(node)) == node

    def test_method_calls(self) -> None:
        """Property and method calls keep their method descriptor."""
        coll = Constant(SColl(SInt), (7, 8, 9))
        size = PropertyCall(coll, find_method(SColl(SInt), "size"))
        index_of = MethodCall(coll, find_method(SColl(SInt), "indexOf"), (_int(8), _int(0)))
        assert expr_from_bytes(expr_to_bytes(size)) == size
        assert expr_from_bytes(expr_to_bytes(index_of)) == index_of

    def test_box_nodes(self) -> None:
        """Box extraction nodes round-trip."""
        node = BinOp(BinOpKind.GT, ExtractAmount(SELF_BOX), Constant(SLong, 100))
        assert expr_from_bytes(expr_to_bytes(node)) == node


class TestConstantStore:
    """Tests for constant segregation through a ConstantStore."""

    def test_placeholders_written(self) -> None:
        """Constants move into the store and placeholders take their place."""
        store = ConstantStore()
        data = expr_to_bytes(plus(_int(1), _int(2)), store)
        assert data == bytes([
            OpCode.PLUS,
            OpCode.CONSTANT_PLACEHOLDER, 0,
            OpCode.CONSTANT_PLACEHOLDER, 1,
        ])
        assert store.get_all() == [_int(1), _int(2)]

    def test_parse_keeps_placeholders(self) -> None:
        """Without substitution the parser yields typed placeholders."""
        store = ConstantStore()
        data = expr_to_bytes(plus(_int(1), _int(2)), store)
        parsed = expr_from_bytes(data, store)
        assert parsed == plus(ConstantPlaceholder(0, SInt), ConstantPlaceholder(1, SInt))

    def test_parse_substitutes(self) -> None:
        """With substitution the original tree comes back."""
        store = ConstantStore()
        tree = plus(_int(1), _int(2))
        data = expr_to_bytes(tree, store)
        assert expr_from_bytes(data, store, substitute_placeholders=True) == tree

    def test_index_out_of_range(self) -> None:
        """A placeholder beyond the store is a decode error."""
        data = bytes([OpCode.CONSTANT_PLACEHOLDER, 3])
        with pytest.raises(DecodeError):
            expr_from_bytes(data, ConstantStore([_int(1)]))

    def test_placeholder_without_store(self) -> None:
        """A placeholder with no constants table is a decode error."""
        with pytest.raises(DecodeError):
            expr_from_bytes(bytes([OpCode.CONSTANT_PLACEHOLDER, 0]))


class TestMalformed:
    """Tests for rejection of malformed input."""

    def test_unknown_opcode(self) -> None:
        """An unassigned opcode is rejected."""
        with pytest.raises(DecodeError):
            expr_from_bytes(bytes([0xFF]))

    def test_truncated(self) -> None:
        """Missing operand bytes are a decode error."""
        data = expr_to_bytes(plus(_int(1), _int(2)))
        with pytest.raises(DecodeError):
            expr_from_bytes(data[:-1])

    def test_undefined_val_use(self) -> None:
        """A ValUse with no enclosing ValDef is rejected."""
        with pytest.raises(DecodeError):
            expr_from_bytes(bytes([OpCode.VAL_USE, 0]))

    def test_ill_typed(self) -> None:
        """Operands of different types are rejected while parsing."""
        data = bytes([OpCode.PLUS, 0x04, 0x02, 0x05, 0x02])
        with pytest.raises(DecodeError):
            expr_from_bytes(data)

    def test_deep_nesting(self) -> None:
        """Nesting beyond the interpreter stack is a decode error, not a crash."""
        data = bytes([OpCode.LOGICAL_NOT]) * 100_000 + bytes([OpCode.TRUE])
        with pytest.raises(DecodeError):
            expr_from_bytes(data)

    def test_construction_type_check(self) -> None:
        """Ill-typed trees cannot be built at all."""
        with pytest.raises(TypeCheckError):
            SizeOf(_int(1))
