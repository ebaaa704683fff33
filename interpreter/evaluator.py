"""Expression evaluator.

Evaluation is a recursive walk over the expression tree. Dispatch is closed:
every node class maps to one handler in `_HANDLERS`, and an unknown class is
an error. Each visited node charges the table's node cost; collection
combinators additionally charge a per-item cost, so the total only depends on
the tree and the data it runs on.

Entry points:
    evaluate          Value of an expression under an env and context
    reduce_to_crypto  Sigma proposition a script reduces to, plus its cost
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ergotree.ergo_tree import ErgoTree, sigma_prop_tree
from ergotree.errors import DecodeError, TypeCheckError
from ergotree.expr import (
    And,
    Append,
    Apply,
    Atleast,
    BinOp,
    BinOpKind,
    BitInversion,
    BlockValue,
    BoolToSigmaProp,
    ByIndex,
    ByteArrayToBigInt,
    ByteArrayToLong,
    CalcBlake2b256,
    CalcSha256,
    Collection,
    Constant,
    ConstantPlaceholder,
    CreateProveDhTuple,
    CreateProveDlog,
    DecodePoint,
    DeserializeContext,
    DeserializeRegister,
    Downcast,
    Exists,
    Exponentiate,
    Expr,
    ExtractAmount,
    ExtractBytes,
    ExtractBytesWithNoRef,
    ExtractCreationInfo,
    ExtractId,
    ExtractRegisterAs,
    ExtractScriptBytes,
    Filter,
    Fold,
    ForAll,
    FuncValue,
    GetVar,
    GlobalVar,
    GlobalVarKind,
    If,
    LogicalNot,
    LongToByteArray,
    Map,
    MethodCall,
    MultiplyGroup,
    Negation,
    OptionGet,
    OptionGetOrElse,
    OptionIsDefined,
    Or,
    PropertyCall,
    SelectField,
    SigmaAnd,
    SigmaOr,
    SigmaPropBytes,
    SizeOf,
    Slice,
    SubstConstants,
    Tuple,
    Upcast,
    ValDef,
    ValUse,
    Xor,
)
from ergotree.data import bigint_from_bytes
from ergotree.serialization import expr_from_bytes
from ergotree.sigma_boolean import (
    MAX_CONJECTURE_ITEMS,
    Cand,
    Cor,
    Cthreshold,
    ProveDhTuple,
    ProveDlog,
    SigmaBoolean,
    TrivialProp,
)
from ergotree.types import SBigInt, SBoolean, SByteArray, SSigmaProp, STuple
from ergotree.values import Lambda, Value, byte_array, bytes_to_coll, checked_numeric, coll_to_bytes
from interpreter.config import EvalConfig
from interpreter.context import Context
from interpreter.cost import CostAccumulator, CostTable
from interpreter.env import Env
from interpreter.errors import (
    ArithmeticEvalError,
    EvalError,
    InvalidArgumentError,
    NotFoundError,
    UnexpectedValueError,
)
from interpreter.methods import METHOD_EVAL
from primitives.group import GroupElement
from primitives.hashing import blake2b256, sha256

logger = logging.getLogger(__name__)


# --- Evaluator ---

class Evaluator:
    """Evaluation state for one script run: context, cost and segregated constants."""

    def __init__(
        self,
        ctx: Context,
        cost: CostAccumulator,
        costs: Optional[CostTable] = None,
        constants: tuple[Constant, ...] = (),
    ):
        self.ctx = ctx
        self.cost = cost
        self.costs = costs or CostTable()
        self.constants = constants
        self.deserializing = False

    def eval(self, expr: Expr, env: Env) -> Value:
        self.cost.add(self.costs.node_cost)
        try:
            handler = _HANDLERS[type(expr)]
        except KeyError:
            raise NotFoundError(f"No evaluator for node {type(expr).__name__}") from None
        return handler(self, expr, env)

    def charge_items(self, n: int) -> None:
        self.cost.add(self.costs.per_item_cost * n)

    def apply(self, func: Value, args: list[Value], env: Env) -> Value:
        """Call a lambda value with arguments bound in a scope extending env."""
        lam = func.v
        if not isinstance(lam, Lambda):
            raise UnexpectedValueError(f"Expected a function, got {func.tpe!r}")
        if len(args) != len(lam.args):
            raise InvalidArgumentError(f"Function takes {len(lam.args)} arguments, got {len(args)}")
        scope = env.extend_many((arg_id, a) for (arg_id, _), a in zip(lam.args, args))
        return self.eval(lam.body, scope)

    def get_box(self, box_id: bytes):
        return self.ctx.get_box(box_id)


Handler = Callable[[Evaluator, Any, Env], Value]
_HANDLERS: dict[type, Handler] = {}


def _handles(*classes: type):
    def wrap(fn: Handler) -> Handler:
        for cls in classes:
            _HANDLERS[cls] = fn
        return fn
    return wrap


def _expect(v: Value, check: Callable[[Any], bool], what: str) -> Any:
    if not check(v.v):
        raise UnexpectedValueError(f"Expected {what}, got {v.tpe!r} value {v.v!r}")
    return v.v


def _bool(ev: Evaluator, e: Expr, env: Env) -> bool:
    return _expect(ev.eval(e, env), lambda x: isinstance(x, bool), "Boolean")


def _int(ev: Evaluator, e: Expr, env: Env) -> int:
    return _expect(ev.eval(e, env), lambda x: isinstance(x, int) and not isinstance(x, bool), "integer")


def _coll(ev: Evaluator, e: Expr, env: Env) -> Value:
    v = ev.eval(e, env)
    _expect(v, lambda x: isinstance(x, tuple), "collection")
    return v


def _bytes(ev: Evaluator, e: Expr, env: Env) -> bytes:
    return coll_to_bytes(_coll(ev, e, env).v)


def _group_element(ev: Evaluator, e: Expr, env: Env) -> GroupElement:
    return _expect(ev.eval(e, env), lambda x: isinstance(x, GroupElement), "GroupElement")


def _sigma(v: Value) -> SigmaBoolean:
    return _expect(v, lambda x: isinstance(x, SigmaBoolean), "SigmaProp")


def _numeric(tpe, n: int) -> Value:
    try:
        return Value(tpe, checked_numeric(tpe, n))
    except OverflowError as e:
        raise ArithmeticEvalError(str(e)) from e


# --- Constants and Globals ---

@_handles(Constant)
def _eval_constant(ev: Evaluator, e: Constant, env: Env) -> Value:
    return e.value


@_handles(ConstantPlaceholder)
def _eval_placeholder(ev: Evaluator, e: ConstantPlaceholder, env: Env) -> Value:
    if not 0 <= e.id < len(ev.constants):
        raise NotFoundError(f"Constant placeholder {e.id} has no constant")
    return ev.constants[e.id].value


def _global_value(ev: Evaluator, kind: GlobalVarKind) -> Any:
    ctx = ev.ctx
    if kind is GlobalVarKind.HEIGHT:
        return ctx.height
    if kind is GlobalVarKind.INPUTS:
        return ctx.inputs
    if kind is GlobalVarKind.OUTPUTS:
        return ctx.outputs
    if kind is GlobalVarKind.SELF:
        return ctx.self_box
    if kind is GlobalVarKind.MINER_PUBKEY:
        return bytes_to_coll(ctx.miner_pubkey)
    if kind is GlobalVarKind.LAST_BLOCK_UTXO_ROOT_HASH:
        if ctx.last_block_utxo_root is None:
            raise NotFoundError("Context has no last block UTXO root")
        return ctx.last_block_utxo_root
    if kind is GlobalVarKind.GROUP_GENERATOR:
        return GroupElement.generator()
    if kind is GlobalVarKind.CONTEXT:
        return ctx
    return None  # Global


@_handles(GlobalVar)
def _eval_global(ev: Evaluator, e: GlobalVar, env: Env) -> Value:
    return Value(e.tpe, _global_value(ev, e.kind))


# --- Blocks and Functions ---

@_handles(ValDef)
def _eval_val_def(ev: Evaluator, e: ValDef, env: Env) -> Value:
    raise UnexpectedValueError(f"ValDef {e.id} evaluated outside of a BlockValue")


@_handles(ValUse)
def _eval_val_use(ev: Evaluator, e: ValUse, env: Env) -> Value:
    return env.get(e.id)


@_handles(BlockValue)
def _eval_block(ev: Evaluator, e: BlockValue, env: Env) -> Value:
    for item in e.items:
        env = env.extend(item.id, ev.eval(item.rhs, env))
    return ev.eval(e.result, env)


@_handles(FuncValue)
def _eval_func_value(ev: Evaluator, e: FuncValue, env: Env) -> Value:
    return Value(e.tpe, Lambda(e.args, e.body))


@_handles(Apply)
def _eval_apply(ev: Evaluator, e: Apply, env: Env) -> Value:
    func = ev.eval(e.func, env)
    args = [ev.eval(a, env) for a in e.args]
    return ev.apply(func, args, env)


@_handles(If)
def _eval_if(ev: Evaluator, e: If, env: Env) -> Value:
    if _bool(ev, e.condition, env):
        return ev.eval(e.true_branch, env)
    return ev.eval(e.false_branch, env)


# --- Binary Operators ---

def _java_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


_ARITH: dict[BinOpKind, Callable[[int, int], int]] = {
    BinOpKind.PLUS: lambda a, b: a + b,
    BinOpKind.MINUS: lambda a, b: a - b,
    BinOpKind.MULTIPLY: lambda a, b: a * b,
    BinOpKind.DIVISION: _java_div,
    BinOpKind.MODULO: lambda a, b: a - b * _java_div(a, b),
    BinOpKind.MIN: min,
    BinOpKind.MAX: max,
    BinOpKind.BIT_OR: lambda a, b: a | b,
    BinOpKind.BIT_AND: lambda a, b: a & b,
    BinOpKind.BIT_XOR: lambda a, b: a ^ b,
}

_ORDER: dict[BinOpKind, Callable[[int, int], bool]] = {
    BinOpKind.LT: lambda a, b: a < b,
    BinOpKind.LE: lambda a, b: a <= b,
    BinOpKind.GT: lambda a, b: a > b,
    BinOpKind.GE: lambda a, b: a >= b,
}


@_handles(BinOp)
def _eval_bin_op(ev: Evaluator, e: BinOp, env: Env) -> Value:
    kind = e.kind
    if kind is BinOpKind.BIN_AND:
        return Value(SBoolean, _bool(ev, e.left, env) and _bool(ev, e.right, env))
    if kind is BinOpKind.BIN_OR:
        return Value(SBoolean, _bool(ev, e.left, env) or _bool(ev, e.right, env))
    if kind is BinOpKind.BIN_XOR:
        return Value(SBoolean, _bool(ev, e.left, env) != _bool(ev, e.right, env))

    left = ev.eval(e.left, env)
    right = ev.eval(e.right, env)
    if kind is BinOpKind.EQ:
        return Value(SBoolean, left.v == right.v)
    if kind is BinOpKind.NEQ:
        return Value(SBoolean, left.v != right.v)

    a = _expect(left, lambda x: isinstance(x, int) and not isinstance(x, bool), "numeric")
    b = _expect(right, lambda x: isinstance(x, int) and not isinstance(x, bool), "numeric")
    if kind in _ORDER:
        return Value(SBoolean, _ORDER[kind](a, b))
    if kind in (BinOpKind.DIVISION, BinOpKind.MODULO) and b == 0:
        raise ArithmeticEvalError(f"{kind.name}: division by zero")
    return _numeric(e.tpe, _ARITH[kind](a, b))


@_handles(Xor)
def _eval_xor(ev: Evaluator, e: Xor, env: Env) -> Value:
    a = _bytes(ev, e.left, env)
    b = _bytes(ev, e.right, env)
    return byte_array(bytes(x ^ y for x, y in zip(a, b)))


# --- Unary Operators ---

@_handles(LogicalNot)
def _eval_not(ev: Evaluator, e: LogicalNot, env: Env) -> Value:
    return Value(SBoolean, not _bool(ev, e.input, env))


@_handles(Negation)
def _eval_negation(ev: Evaluator, e: Negation, env: Env) -> Value:
    return _numeric(e.tpe, -_int(ev, e.input, env))


@_handles(BitInversion)
def _eval_bit_inversion(ev: Evaluator, e: BitInversion, env: Env) -> Value:
    return _numeric(e.tpe, ~_int(ev, e.input, env))


@_handles(And, Or)
def _eval_and_or(ev: Evaluator, e: And | Or, env: Env) -> Value:
    items = _coll(ev, e.input, env).v
    ev.charge_items(len(items))
    return Value(SBoolean, all(items) if isinstance(e, And) else any(items))


@_handles(SizeOf)
def _eval_size_of(ev: Evaluator, e: SizeOf, env: Env) -> Value:
    return Value(e.tpe, len(_coll(ev, e.input, env).v))


@_handles(Upcast, Downcast)
def _eval_cast(ev: Evaluator, e: Upcast | Downcast, env: Env) -> Value:
    return _numeric(e.tpe, _int(ev, e.input, env))


@_handles(CalcBlake2b256)
def _eval_blake2b256(ev: Evaluator, e: CalcBlake2b256, env: Env) -> Value:
    data = _bytes(ev, e.input, env)
    ev.charge_items(len(data))
    return byte_array(blake2b256(data))


@_handles(CalcSha256)
def _eval_sha256(ev: Evaluator, e: CalcSha256, env: Env) -> Value:
    data = _bytes(ev, e.input, env)
    ev.charge_items(len(data))
    return byte_array(sha256(data))


@_handles(LongToByteArray)
def _eval_long_to_bytes(ev: Evaluator, e: LongToByteArray, env: Env) -> Value:
    return byte_array(_int(ev, e.input, env).to_bytes(8, "big", signed=True))


@_handles(ByteArrayToLong)
def _eval_bytes_to_long(ev: Evaluator, e: ByteArrayToLong, env: Env) -> Value:
    data = _bytes(ev, e.input, env)
    if len(data) < 8:
        raise InvalidArgumentError(f"byteArrayToLong: need at least 8 bytes, got {len(data)}")
    return Value(e.tpe, int.from_bytes(data[:8], "big", signed=True))


@_handles(ByteArrayToBigInt)
def _eval_bytes_to_bigint(ev: Evaluator, e: ByteArrayToBigInt, env: Env) -> Value:
    data = _bytes(ev, e.input, env)
    if not data:
        raise InvalidArgumentError("byteArrayToBigInt: empty input")
    return _numeric(SBigInt, bigint_from_bytes(data))


@_handles(DecodePoint)
def _eval_decode_point(ev: Evaluator, e: DecodePoint, env: Env) -> Value:
    data = _bytes(ev, e.input, env)
    try:
        return Value(e.tpe, GroupElement.from_bytes(data))
    except ValueError as err:
        raise InvalidArgumentError(f"decodePoint: {err}") from err


@_handles(Exponentiate)
def _eval_exponentiate(ev: Evaluator, e: Exponentiate, env: Env) -> Value:
    ge = _group_element(ev, e.left, env)
    return Value(e.tpe, ge.scalar_mul(_int(ev, e.right, env)))


@_handles(MultiplyGroup)
def _eval_multiply_group(ev: Evaluator, e: MultiplyGroup, env: Env) -> Value:
    a = _group_element(ev, e.left, env)
    return Value(e.tpe, a.add(_group_element(ev, e.right, env)))


# --- Collections ---

@_handles(Collection)
def _eval_collection(ev: Evaluator, e: Collection, env: Env) -> Value:
    return Value(e.tpe, tuple(ev.eval(it, env).v for it in e.items))


@_handles(ByIndex)
def _eval_by_index(ev: Evaluator, e: ByIndex, env: Env) -> Value:
    items = _coll(ev, e.input, env).v
    i = _int(ev, e.index, env)
    if 0 <= i < len(items):
        return Value(e.tpe, items[i])
    if e.default is not None:
        return ev.eval(e.default, env)
    raise InvalidArgumentError(f"ByIndex: index {i} out of bounds for collection of size {len(items)}")


@_handles(Slice)
def _eval_slice(ev: Evaluator, e: Slice, env: Env) -> Value:
    items = _coll(ev, e.input, env).v
    start = max(_int(ev, e.from_, env), 0)
    until = min(_int(ev, e.until, env), len(items))
    return Value(e.tpe, items[start:until] if start < until else ())


@_handles(Append)
def _eval_append(ev: Evaluator, e: Append, env: Env) -> Value:
    a = _coll(ev, e.input, env).v
    b = _coll(ev, e.col2, env).v
    ev.charge_items(len(a) + len(b))
    return Value(e.tpe, a + b)


@_handles(Map)
def _eval_map(ev: Evaluator, e: Map, env: Env) -> Value:
    coll = _coll(ev, e.input, env)
    f = ev.eval(e.mapper, env)
    out = []
    for item in coll.v:
        ev.charge_items(1)
        out.append(ev.apply(f, [Value(coll.tpe.elem, item)], env).v)
    return Value(e.tpe, tuple(out))


@_handles(Filter)
def _eval_filter(ev: Evaluator, e: Filter, env: Env) -> Value:
    coll = _coll(ev, e.input, env)
    p = ev.eval(e.condition, env)
    out = []
    for item in coll.v:
        ev.charge_items(1)
        if _expect(ev.apply(p, [Value(coll.tpe.elem, item)], env), lambda x: isinstance(x, bool), "Boolean"):
            out.append(item)
    return Value(e.tpe, tuple(out))


@_handles(Exists, ForAll)
def _eval_exists_forall(ev: Evaluator, e: Exists | ForAll, env: Env) -> Value:
    coll = _coll(ev, e.input, env)
    p = ev.eval(e.condition, env)
    want = isinstance(e, Exists)
    for item in coll.v:
        ev.charge_items(1)
        res = _expect(ev.apply(p, [Value(coll.tpe.elem, item)], env), lambda x: isinstance(x, bool), "Boolean")
        if res == want:
            return Value(SBoolean, want)
    return Value(SBoolean, not want)


@_handles(Fold)
def _eval_fold(ev: Evaluator, e: Fold, env: Env) -> Value:
    coll = _coll(ev, e.input, env)
    acc = ev.eval(e.zero, env)
    f = ev.eval(e.fold_op, env)
    pair_tpe = STuple((e.zero.tpe, coll.tpe.elem))
    for item in coll.v:
        ev.charge_items(1)
        acc = ev.apply(f, [Value(pair_tpe, (acc.v, item))], env)
    return acc


# --- Tuples ---

@_handles(Tuple)
def _eval_tuple(ev: Evaluator, e: Tuple, env: Env) -> Value:
    return Value(e.tpe, tuple(ev.eval(it, env).v for it in e.items))


@_handles(SelectField)
def _eval_select_field(ev: Evaluator, e: SelectField, env: Env) -> Value:
    t = ev.eval(e.input, env)
    items = _expect(t, lambda x: isinstance(x, tuple) and len(x) >= e.field_index, "tuple")
    return Value(e.tpe, items[e.field_index - 1])


# --- Boxes ---

def _box(ev: Evaluator, e: Expr, env: Env):
    box_id = _expect(ev.eval(e, env), lambda x: isinstance(x, bytes), "Box")
    return ev.get_box(box_id)


@_handles(ExtractAmount)
def _eval_extract_amount(ev: Evaluator, e: ExtractAmount, env: Env) -> Value:
    return Value(e.tpe, _box(ev, e.input, env).value)


@_handles(ExtractScriptBytes)
def _eval_extract_script_bytes(ev: Evaluator, e: ExtractScriptBytes, env: Env) -> Value:
    return byte_array(_box(ev, e.input, env).ergo_tree.to_bytes())


@_handles(ExtractBytes)
def _eval_extract_bytes(ev: Evaluator, e: ExtractBytes, env: Env) -> Value:
    return byte_array(_box(ev, e.input, env).to_bytes())


@_handles(ExtractBytesWithNoRef)
def _eval_extract_bytes_no_ref(ev: Evaluator, e: ExtractBytesWithNoRef, env: Env) -> Value:
    return byte_array(_box(ev, e.input, env).bytes_without_ref())


@_handles(ExtractId)
def _eval_extract_id(ev: Evaluator, e: ExtractId, env: Env) -> Value:
    return byte_array(_box(ev, e.input, env).box_id)


@_handles(ExtractCreationInfo)
def _eval_extract_creation_info(ev: Evaluator, e: ExtractCreationInfo, env: Env) -> Value:
    return _box(ev, e.input, env).get_register(3)


@_handles(ExtractRegisterAs)
def _eval_extract_register_as(ev: Evaluator, e: ExtractRegisterAs, env: Env) -> Value:
    reg = _box(ev, e.input, env).get_register(e.register_id)
    if reg is None:
        return Value(e.tpe, ())
    if reg.tpe != e.elem_tpe:
        raise UnexpectedValueError(f"Register R{e.register_id} holds {reg.tpe!r}, expected {e.elem_tpe!r}")
    return Value(e.tpe, (reg.v,))


# --- Options and Context Variables ---

@_handles(OptionGet)
def _eval_option_get(ev: Evaluator, e: OptionGet, env: Env) -> Value:
    opt = ev.eval(e.input, env).v
    if not opt:
        raise NotFoundError("Option.get on None")
    return Value(e.tpe, opt[0])


@_handles(OptionIsDefined)
def _eval_option_is_defined(ev: Evaluator, e: OptionIsDefined, env: Env) -> Value:
    return Value(SBoolean, bool(ev.eval(e.input, env).v))


@_handles(OptionGetOrElse)
def _eval_option_get_or_else(ev: Evaluator, e: OptionGetOrElse, env: Env) -> Value:
    opt = ev.eval(e.input, env).v
    if opt:
        return Value(e.tpe, opt[0])
    return ev.eval(e.default, env)


@_handles(GetVar)
def _eval_get_var(ev: Evaluator, e: GetVar, env: Env) -> Value:
    c = ev.ctx.extension.get(e.var_id)
    if c is None:
        return Value(e.tpe, ())
    if c.tpe != e.var_tpe:
        raise UnexpectedValueError(f"Context variable {e.var_id} has type {c.tpe!r}, expected {e.var_tpe!r}")
    return Value(e.tpe, (c.v,))


def _check_not_nested(ev: Evaluator, what: str) -> None:
    if ev.deserializing:
        raise InvalidArgumentError(f"{what}: nested deserialization is not allowed")


def _eval_deserialized(ev: Evaluator, data: bytes, tpe, what: str) -> Value:
    try:
        expr = expr_from_bytes(data)
    except DecodeError as err:
        raise InvalidArgumentError(f"{what}: cannot parse expression: {err}") from err
    if expr.tpe != tpe:
        raise UnexpectedValueError(f"{what}: expression has type {expr.tpe!r}, expected {tpe!r}")
    ev.deserializing = True
    try:
        return ev.eval(expr, Env.empty())
    finally:
        ev.deserializing = False


@_handles(DeserializeContext)
def _eval_deserialize_context(ev: Evaluator, e: DeserializeContext, env: Env) -> Value:
    _check_not_nested(ev, f"DeserializeContext({e.id})")
    c = ev.ctx.extension.get(e.id)
    if c is None:
        raise NotFoundError(f"Context variable {e.id} not found")
    if c.tpe != SByteArray:
        raise UnexpectedValueError(f"Context variable {e.id} must be Coll[Byte], got {c.tpe!r}")
    return _eval_deserialized(ev, coll_to_bytes(c.v), e.tpe, f"DeserializeContext({e.id})")


@_handles(DeserializeRegister)
def _eval_deserialize_register(ev: Evaluator, e: DeserializeRegister, env: Env) -> Value:
    _check_not_nested(ev, f"DeserializeRegister(R{e.reg})")
    reg = ev.get_box(ev.ctx.self_box).get_register(e.reg)
    if reg is None:
        if e.default is not None:
            return ev.eval(e.default, env)
        raise NotFoundError(f"Register R{e.reg} of SELF is empty")
    if reg.tpe != SByteArray:
        raise UnexpectedValueError(f"Register R{e.reg} must be Coll[Byte], got {reg.tpe!r}")
    return _eval_deserialized(ev, coll_to_bytes(reg.v), e.tpe, f"DeserializeRegister(R{e.reg})")


@_handles(SubstConstants)
def _eval_subst_constants(ev: Evaluator, e: SubstConstants, env: Env) -> Value:
    script = _bytes(ev, e.script_bytes, env)
    positions = _coll(ev, e.positions, env).v
    new_values = _coll(ev, e.new_values, env)
    if len(positions) != len(new_values.v):
        raise InvalidArgumentError("SubstConstants: positions and values differ in length")
    try:
        tree = ErgoTree.from_bytes(script)
        for pos, v in zip(positions, new_values.v):
            tree = tree.with_constant(pos, Constant(new_values.tpe.elem, v))
    except (DecodeError, TypeCheckError, ValueError) as err:
        raise InvalidArgumentError(f"SubstConstants: {err}") from err
    ev.charge_items(len(positions))
    return byte_array(tree.to_bytes())


# --- Sigma ---

@_handles(CreateProveDlog)
def _eval_prove_dlog(ev: Evaluator, e: CreateProveDlog, env: Env) -> Value:
    return Value(SSigmaProp, ProveDlog(_group_element(ev, e.input, env)))


@_handles(CreateProveDhTuple)
def _eval_prove_dh_tuple(ev: Evaluator, e: CreateProveDhTuple, env: Env) -> Value:
    g, h, u, v = (_group_element(ev, x, env) for x in (e.g, e.h, e.u, e.v))
    return Value(SSigmaProp, ProveDhTuple(g, h, u, v))


@_handles(BoolToSigmaProp)
def _eval_bool_to_sigma(ev: Evaluator, e: BoolToSigmaProp, env: Env) -> Value:
    return Value(SSigmaProp, TrivialProp(_bool(ev, e.input, env)))


@_handles(SigmaPropBytes)
def _eval_sigma_prop_bytes(ev: Evaluator, e: SigmaPropBytes, env: Env) -> Value:
    sb = _sigma(ev.eval(e.input, env))
    return byte_array(sigma_prop_tree(sb).to_bytes())


@_handles(SigmaAnd)
def _eval_sigma_and(ev: Evaluator, e: SigmaAnd, env: Env) -> Value:
    return Value(SSigmaProp, Cand.normalized([_sigma(ev.eval(it, env)) for it in e.items]))


@_handles(SigmaOr)
def _eval_sigma_or(ev: Evaluator, e: SigmaOr, env: Env) -> Value:
    return Value(SSigmaProp, Cor.normalized([_sigma(ev.eval(it, env)) for it in e.items]))


@_handles(Atleast)
def _eval_atleast(ev: Evaluator, e: Atleast, env: Env) -> Value:
    bound = _int(ev, e.bound, env)
    items = _coll(ev, e.input, env).v
    if len(items) > MAX_CONJECTURE_ITEMS:
        raise InvalidArgumentError(f"Atleast: at most {MAX_CONJECTURE_ITEMS} items, got {len(items)}")
    ev.charge_items(len(items))
    return Value(SSigmaProp, Cthreshold.reduce(bound, list(items)))


# --- Object Calls ---

@_handles(PropertyCall, MethodCall)
def _eval_method(ev: Evaluator, e: PropertyCall | MethodCall, env: Env) -> Value:
    key = (e.method.type_code, e.method.method_id)
    try:
        native = METHOD_EVAL[key]
    except KeyError:
        raise NotFoundError(f"No implementation for method {e.method.name} {key}") from None
    obj = ev.eval(e.obj, env)
    args = [ev.eval(a, env) for a in getattr(e, "args", ())]
    return Value(e.tpe, native(ev, env, obj, args))


# --- Entry Points ---

def evaluate(
    expr: Expr,
    env: Env,
    ctx: Context,
    cost: CostAccumulator,
    costs: Optional[CostTable] = None,
    constants: tuple[Constant, ...] = (),
) -> Value:
    """Evaluate expr, charging cost to the accumulator.

    Raises:
        EvalError: On any evaluation failure, CostError when over the limit
    """
    try:
        return Evaluator(ctx, cost, costs, constants).eval(expr, env)
    except RecursionError:
        raise EvalError("Expression nesting exceeds the interpreter recursion limit") from None


@dataclass(frozen=True)
class ReductionResult:
    """Sigma proposition a script reduced to and the cost of reducing it."""
    sigma_prop: SigmaBoolean
    cost: int


def reduce_to_crypto(
    expr: Expr,
    env: Env,
    ctx: Context,
    config: Optional[EvalConfig] = None,
    constants: tuple[Constant, ...] = (),
) -> ReductionResult:
    """Evaluate a script down to its sigma proposition.

    Boolean results become TrivialProp; any other non-SigmaProp result is an
    error.

    Raises:
        UnexpectedValueError: If the result is neither Boolean nor SigmaProp
        EvalError: On evaluation failure
    """
    config = config or EvalConfig()
    cost = CostAccumulator(config.cost_limit)
    logger.debug("Reducing %s (cost limit %s)", type(expr).__name__, config.cost_limit)
    res = evaluate(expr, env, ctx, cost, config.costs, constants)
    if res.tpe == SBoolean:
        sb: SigmaBoolean = TrivialProp(res.v)
    elif res.tpe == SSigmaProp:
        sb = res.v
    else:
        raise UnexpectedValueError(f"Script must reduce to Boolean or SigmaProp, got {res.tpe!r}")
    logger.debug("Reduced to %s with cost %d", type(sb).__name__, cost.total)
    return ReductionResult(sb, cost.total)


def reduce_tree(tree: ErgoTree, ctx: Context, config: Optional[EvalConfig] = None) -> ReductionResult:
    """reduce_to_crypto over an ErgoTree's root, resolving its segregated constants."""
    return reduce_to_crypto(tree.root, Env.empty(), ctx, config, tree.constants)
