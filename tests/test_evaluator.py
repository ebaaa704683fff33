"""Tests for expression evaluation and reduction to sigma propositions."""

import pytest

from ergotree.chain import ContextExtension, ErgoBox
from ergotree.ergo_tree import ErgoTree, p2pk
from ergotree.expr import (
    HEIGHT,
    INPUTS,
    SELF_BOX,
    Append,
    Apply,
    Atleast,
    BinOp,
    BinOpKind,
    BlockValue,
    BoolToSigmaProp,
    ByIndex,
    Collection,
    Constant,
    CreateProveDlog,
    DeserializeContext,
    DeserializeRegister,
    Exists,
    ExtractAmount,
    ExtractRegisterAs,
    Filter,
    Fold,
    FuncValue,
    GetVar,
    If,
    LogicalNot,
    Map,
    OptionGet,
    OptionGetOrElse,
    SelectField,
    SigmaAnd,
    SigmaOr,
    SizeOf,
    Slice,
    ValDef,
    ValUse,
    eq,
    plus,
)
from ergotree.serialization import expr_to_bytes
from ergotree.sigma_boolean import Cor, Cthreshold, ProveDlog, TrivialProp
from ergotree.types import SBoolean, SByteArray, SColl, SGroupElement, SInt, SLong, SSigmaProp, STuple
from ergotree.values import Value, bytes_to_coll
from interpreter.config import EvalConfig
from interpreter.context import Context
from interpreter.cost import CostAccumulator
from interpreter.env import Env
from interpreter.errors import (
    ArenaError,
    ArithmeticEvalError,
    CostError,
    EvalError,
    InvalidArgumentError,
    NotFoundError,
    UnexpectedValueError,
)
from interpreter.evaluator import evaluate, reduce_to_crypto, reduce_tree
from primitives.group import GroupElement

INT_MAX = 2**31 - 1


def _int(n: int) -> Constant:
    return Constant(SInt, n)


def _eval(expr, context: Context, limit=None) -> Value:
    return evaluate(expr, Env.empty(), context, CostAccumulator(limit))


def _sum_fold(items) -> Fold:
    pair = STuple((SInt, SInt))
    arg = ValUse(1, pair)
    return Fold(
        Constant(SColl(SInt), tuple(items)),
        _int(0),
        FuncValue(((1, pair),), plus(SelectField(arg, 1), SelectField(arg, 2))),
    )


def _pk(i: int) -> GroupElement:
    return GroupElement.generator() * i


class TestBlocks:
    """Tests for bindings and lambdas."""

    def test_height_binding(self, context) -> None:
        """A block binding HEIGHT returns the context height."""
        block = BlockValue((ValDef(0, HEIGHT),), ValUse(0, SInt))
        assert _eval(block, context) == Value(SInt, 100)

    def test_sequential_bindings(self, context) -> None:
        """Later bindings see earlier ones."""
        block = BlockValue(
            (ValDef(0, _int(2)), ValDef(1, plus(ValUse(0, SInt), ValUse(0, SInt)))),
            ValUse(1, SInt),
        )
        assert _eval(block, context) == Value(SInt, 4)

    def test_apply(self, context) -> None:
        """Applying a lambda binds its argument."""
        inc = FuncValue(((1, SInt),), plus(ValUse(1, SInt), _int(1)))
        assert _eval(Apply(inc, (_int(41),)), context) == Value(SInt, 42)

    def test_unbound(self, context) -> None:
        """Using an unbound id is a NotFoundError."""
        with pytest.raises(NotFoundError):
            _eval(ValUse(9, SInt), context)


class TestArithmetic:
    """Tests for numeric operators."""

    @pytest.mark.parametrize("kind, a, b, expected", [
        (BinOpKind.PLUS, 2, 3, 5),
        (BinOpKind.MINUS, 2, 3, -1),
        (BinOpKind.MULTIPLY, -4, 3, -12),
        (BinOpKind.DIVISION, -7, 2, -3),
        (BinOpKind.MODULO, -7, 2, -1),
        (BinOpKind.MIN, 4, 9, 4),
        (BinOpKind.MAX, 4, 9, 9),
        (BinOpKind.BIT_AND, 6, 3, 2),
    ])
    def test_ops(self, context, kind, a: int, b: int, expected: int) -> None:
        """Integer operators truncate toward zero like the JVM."""
        assert _eval(BinOp(kind, _int(a), _int(b)), context) == Value(SInt, expected)

    def test_overflow(self, context) -> None:
        """Results outside the type's range raise instead of wrapping."""
        with pytest.raises(ArithmeticEvalError):
            _eval(plus(_int(INT_MAX), _int(1)), context)

    def test_long_no_overflow(self, context) -> None:
        """The same sum fits a Long."""
        expr = plus(Constant(SLong, INT_MAX), Constant(SLong, 1))
        assert _eval(expr, context) == Value(SLong, INT_MAX + 1)

    @pytest.mark.parametrize("kind", [BinOpKind.DIVISION, BinOpKind.MODULO])
    def test_divide_by_zero(self, context, kind) -> None:
        with pytest.raises(ArithmeticEvalError):
            _eval(BinOp(kind, _int(1), _int(0)), context)

    def test_comparisons(self, context) -> None:
        assert _eval(BinOp(BinOpKind.LT, _int(1), _int(2)), context) == Value(SBoolean, True)
        assert _eval(eq(_int(1), _int(2)), context) == Value(SBoolean, False)

    def test_if(self, context) -> None:
        """Only the taken branch is evaluated."""
        bad = BinOp(BinOpKind.DIVISION, _int(1), _int(0))
        expr = If(BinOp(BinOpKind.GT, HEIGHT, _int(10)), _int(1), bad)
        assert _eval(expr, context) == Value(SInt, 1)

    def test_short_circuit(self, context) -> None:
        """Logical AND skips its right operand when the left is false."""
        bad = eq(BinOp(BinOpKind.DIVISION, _int(1), _int(0)), _int(0))
        expr = BinOp(BinOpKind.BIN_AND, Constant(SBoolean, False), bad)
        assert _eval(expr, context) == Value(SBoolean, False)


class TestCollections:
    """Tests for collection nodes."""

    def test_map(self, context) -> None:
        double = FuncValue(((1, SInt),), plus(ValUse(1, SInt), ValUse(1, SInt)))
        expr = Map(Constant(SColl(SInt), (1, 2, 3)), double)
        assert _eval(expr, context) == Value(SColl(SInt), (2, 4, 6))

    def test_filter(self, context) -> None:
        positive = FuncValue(((1, SInt),), BinOp(BinOpKind.GT, ValUse(1, SInt), _int(0)))
        expr = Filter(Constant(SColl(SInt), (-1, 2, 0, 3)), positive)
        assert _eval(expr, context) == Value(SColl(SInt), (2, 3))

    def test_exists(self, context) -> None:
        is_two = FuncValue(((1, SInt),), eq(ValUse(1, SInt), _int(2)))
        assert _eval(Exists(Constant(SColl(SInt), (1, 2)), is_two), context).v is True
        assert _eval(Exists(Constant(SColl(SInt), ()), is_two), context).v is False

    def test_fold(self, context) -> None:
        assert _eval(_sum_fold(range(10)), context) == Value(SInt, 45)

    def test_by_index(self, context) -> None:
        """Out-of-range access uses the default or fails."""
        coll = Constant(SColl(SInt), (5, 6))
        assert _eval(ByIndex(coll, _int(1)), context) == Value(SInt, 6)
        assert _eval(ByIndex(coll, _int(2), _int(0)), context) == Value(SInt, 0)
        with pytest.raises(InvalidArgumentError):
            _eval(ByIndex(coll, _int(2)), context)

    def test_slice_append_size(self, context) -> None:
        coll = Constant(SColl(SInt), (1, 2, 3, 4))
        sliced = Slice(coll, _int(1), _int(10))
        assert _eval(sliced, context).v == (2, 3, 4)
        assert _eval(SizeOf(Append(sliced, coll)), context) == Value(SInt, 7)

    def test_collection_node(self, context) -> None:
        expr = Collection(SInt, (HEIGHT, _int(1)))
        assert _eval(expr, context) == Value(SColl(SInt), (100, 1))


class TestContext:
    """Tests for nodes reading the context."""

    def test_self_amount(self, context) -> None:
        assert _eval(ExtractAmount(SELF_BOX), context) == Value(SLong, 1_000_000)

    def test_inputs(self, context) -> None:
        """SELF is included in INPUTS."""
        assert _eval(SizeOf(INPUTS), context) == Value(SInt, 1)

    def test_register(self, context) -> None:
        """Registers read as options; the mandatory R0 holds the value."""
        r0 = ExtractRegisterAs(SELF_BOX, 0, SLong)
        r4 = ExtractRegisterAs(SELF_BOX, 4, SInt)
        assert _eval(OptionGet(r0), context) == Value(SLong, 1_000_000)
        assert _eval(OptionGetOrElse(r4, _int(7)), context) == Value(SInt, 7)
        with pytest.raises(NotFoundError):
            _eval(OptionGet(r4), context)

    def test_register_type_mismatch(self, context) -> None:
        with pytest.raises(UnexpectedValueError):
            _eval(ExtractRegisterAs(SELF_BOX, 0, SInt), context)

    def test_get_var(self, context) -> None:
        ctx = context.with_extension(ContextExtension({1: _int(5)}))
        assert _eval(OptionGet(GetVar(1, SInt)), ctx) == Value(SInt, 5)
        assert _eval(GetVar(2, SInt), ctx).v == ()

    def test_deserialize_context(self, context) -> None:
        """A context variable holding expression bytes is evaluated in place."""
        script = expr_to_bytes(plus(HEIGHT, _int(1)))
        ctx = context.with_extension(ContextExtension({3: Constant(SByteArray, bytes_to_coll(script))}))
        assert _eval(DeserializeContext(SInt, 3), ctx) == Value(SInt, 101)

    def test_self_deserializing_variable(self, context) -> None:
        """A variable holding its own DeserializeContext node is rejected, not recursed into."""
        expr = DeserializeContext(SBoolean, 1)
        ctx = context.with_extension(
            ContextExtension({1: Constant(SByteArray, bytes_to_coll(expr_to_bytes(expr)))})
        )
        with pytest.raises(InvalidArgumentError):
            reduce_to_crypto(BoolToSigmaProp(expr), Env.empty(), ctx)

    def test_self_deserializing_register(self) -> None:
        """Deserialized register bytes may not deserialize again."""
        expr = DeserializeRegister(4, SBoolean)
        box = ErgoBox(
            value=1,
            ergo_tree=p2pk(_pk(1)),
            creation_height=1,
            registers={4: Constant(SByteArray, bytes_to_coll(expr_to_bytes(expr)))},
        )
        ctx = Context.from_boxes(height=10, self_box=box)
        with pytest.raises(InvalidArgumentError):
            reduce_to_crypto(expr, Env.empty(), ctx)

    def test_deep_nesting(self, context) -> None:
        """Nesting past the interpreter's recursion limit is an evaluation error."""
        expr = Constant(SBoolean, True)
        for _ in range(50_000):
            expr = LogicalNot(expr)
        with pytest.raises(EvalError):
            _eval(expr, context)

    def test_missing_box(self, context) -> None:
        """A context whose arena lacks SELF cannot resolve it."""
        other = Context(height=1, self_box=bytes(32), inputs=(), outputs=(), box_arena=context.box_arena)
        with pytest.raises(ArenaError):
            _eval(ExtractAmount(SELF_BOX), other)


class TestCost:
    """Tests for the cost limit."""

    def test_fold_over_limit(self, context) -> None:
        """A large fold is aborted with the configured limit."""
        with pytest.raises(CostError) as exc_info:
            _eval(_sum_fold(range(10_000)), context, limit=5000)
        assert exc_info.value.limit == 5000

    def test_fold_unbounded(self, context) -> None:
        assert _eval(_sum_fold(range(10_000)), context) == Value(SInt, 49_995_000)

    def test_exact_limit(self, context) -> None:
        """Evaluation succeeds iff the total cost is within the limit."""
        expr = plus(_int(1), _int(2))
        cost = CostAccumulator()
        evaluate(expr, Env.empty(), context, cost)
        _eval(expr, context, limit=cost.total)
        with pytest.raises(CostError):
            _eval(expr, context, limit=cost.total - 1)

    def test_reduction_reports_cost(self, context) -> None:
        res = reduce_to_crypto(BoolToSigmaProp(Constant(SBoolean, True)), Env.empty(), context)
        assert res.cost == 2


class TestReduction:
    """Tests for reducing scripts to sigma propositions."""

    def test_boolean(self, context) -> None:
        """Boolean results become trivial propositions."""
        expr = BinOp(BinOpKind.GT, HEIGHT, _int(10))
        assert reduce_to_crypto(expr, Env.empty(), context).sigma_prop == TrivialProp(True)

    def test_bool_to_sigma(self, context) -> None:
        expr = BoolToSigmaProp(BinOp(BinOpKind.LT, HEIGHT, _int(10)))
        assert reduce_to_crypto(expr, Env.empty(), context).sigma_prop == TrivialProp(False)

    def test_not_a_proposition(self, context) -> None:
        with pytest.raises(UnexpectedValueError):
            reduce_to_crypto(_int(1), Env.empty(), context)

    def test_p2pk(self, context, p2pk_box, sk1) -> None:
        """A P2PK tree reduces to its ProveDlog."""
        res = reduce_tree(p2pk_box.ergo_tree, context)
        assert res.sigma_prop == sk1.public_image

    def test_segregated(self, context) -> None:
        """Placeholders resolve against the tree's constants table."""
        expr = SigmaOr((
            BoolToSigmaProp(BinOp(BinOpKind.GT, HEIGHT, _int(1000))),
            CreateProveDlog(Constant(SGroupElement, _pk(1))),
        ))
        tree = ErgoTree.from_expr(expr, segregate=True)
        assert reduce_tree(tree, context).sigma_prop == ProveDlog(_pk(1))

    def test_trivial_children_folded(self, context) -> None:
        """Trivial children are folded out of conjunctions."""
        true_prop = BoolToSigmaProp(Constant(SBoolean, True))
        dlog = CreateProveDlog(Constant(SGroupElement, _pk(2)))
        and_expr = SigmaAnd((true_prop, dlog))
        or_expr = SigmaOr((dlog, CreateProveDlog(Constant(SGroupElement, _pk(3)))))
        assert reduce_to_crypto(and_expr, Env.empty(), context).sigma_prop == ProveDlog(_pk(2))
        assert reduce_to_crypto(or_expr, Env.empty(), context).sigma_prop == Cor((ProveDlog(_pk(2)), ProveDlog(_pk(3))))

    def test_atleast(self, context) -> None:
        """Atleast builds a threshold over its items."""
        props = Collection(SSigmaProp, tuple(CreateProveDlog(Constant(SGroupElement, _pk(i))) for i in (1, 2, 3)))
        res = reduce_to_crypto(Atleast(_int(2), props), Env.empty(), context)
        assert res.sigma_prop == Cthreshold(2, tuple(ProveDlog(_pk(i)) for i in (1, 2, 3)))

    def test_config_limit(self, context) -> None:
        with pytest.raises(CostError):
            reduce_to_crypto(_sum_fold(range(100)), Env.empty(), context, EvalConfig(cost_limit=10))

    def test_tree_with_other_box(self, context) -> None:
        """reduce_tree evaluates the tree against the given context, not the box it came from."""
        box = ErgoBox(value=5, ergo_tree=p2pk(_pk(4)), creation_height=1)
        assert reduce_tree(box.ergo_tree, context).sigma_prop == ProveDlog(_pk(4))
