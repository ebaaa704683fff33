"""Binary codec for expression trees.

Each node is written as its opcode byte followed by its fields in a fixed
order, children recursively. Constants are the exception: they have no
opcode and are written as type + data; their first byte (the type code) is
always <= LAST_CONSTANT_CODE, which is how the parser tells them apart.

When the writer carries a ConstantStore, constants are moved into the store
and a ConstantPlaceholder(index) is written instead. Parsing such bytes needs
the same store on the reader.
"""

from __future__ import annotations

import logging
from typing import Callable

from ergotree.data import parse_constant, serialize_constant
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
    UnaryOp,
    Upcast,
    ValDef,
    ValUse,
    Xor,
)
from ergotree.methods import get_method
from ergotree.opcodes import OpCode, is_constant_code
from ergotree.types import SBoolean, SUnit, parse_type, serialize_type
from primitives.vlq import SigmaByteReader, SigmaByteWriter

logger = logging.getLogger(__name__)


# --- Constant Store ---

class ConstantStore:
    """Side table of segregated constants, indexed by placeholder id."""

    def __init__(self, constants: list[Constant] | None = None):
        self._constants: list[Constant] = list(constants or [])

    def __len__(self) -> int:
        return len(self._constants)

    def put(self, c: Constant) -> ConstantPlaceholder:
        self._constants.append(c)
        return ConstantPlaceholder(len(self._constants) - 1, c.tpe)

    def get(self, index: int) -> Constant:
        if not 0 <= index < len(self._constants):
            raise DecodeError(
                f"Constant placeholder index {index} out of range (store has {len(self._constants)})"
            )
        return self._constants[index]

    def get_all(self) -> list[Constant]:
        return list(self._constants)


# --- Writers ---

def _write_exprs(items: tuple[Expr, ...], w: SigmaByteWriter) -> None:
    w.put_u32(len(items))
    for it in items:
        serialize_expr(it, w)


def _write_opt(e: Expr | None, w: SigmaByteWriter) -> None:
    if e is None:
        w.put_u8(0)
    else:
        w.put_u8(1)
        serialize_expr(e, w)


def _is_bool_const(e: Expr) -> bool:
    return isinstance(e, Constant) and e.tpe == SBoolean


def _write_bin_op(e: BinOp, w: SigmaByteWriter) -> None:
    if _is_bool_const(e.left) and _is_bool_const(e.right):
        w.put_u8(OpCode.COLL_OF_BOOL_CONST)
        w.put_bits([e.left.v, e.right.v])
    else:
        serialize_expr(e.left, w)
        serialize_expr(e.right, w)


def _write_collection(e: Collection, w: SigmaByteWriter) -> None:
    w.put_u16(len(e.items))
    serialize_type(e.elem_tpe, w)
    for it in e.items:
        serialize_expr(it, w)


def _write_func_value(e: FuncValue, w: SigmaByteWriter) -> None:
    w.put_u32(len(e.args))
    for arg_id, arg_tpe in e.args:
        w.put_u32(arg_id)
        serialize_type(arg_tpe, w)
    serialize_expr(e.body, w)


def _write_block(e: BlockValue, w: SigmaByteWriter) -> None:
    _write_exprs(e.items, w)
    serialize_expr(e.result, w)


def _write_method_call(e: MethodCall, w: SigmaByteWriter) -> None:
    w.put_u8(e.method.type_code)
    w.put_u8(e.method.method_id)
    serialize_expr(e.obj, w)
    _write_exprs(e.args, w)


def _write_property_call(e: PropertyCall, w: SigmaByteWriter) -> None:
    w.put_u8(e.method.type_code)
    w.put_u8(e.method.method_id)
    serialize_expr(e.obj, w)


def _write_children(*fields: str) -> Callable[[Expr, SigmaByteWriter], None]:
    def write(e: Expr, w: SigmaByteWriter) -> None:
        for f in fields:
            serialize_expr(getattr(e, f), w)
    return write


_WRITERS: dict[type, Callable[[Expr, SigmaByteWriter], None]] = {
    ConstantPlaceholder: lambda e, w: w.put_u32(e.id),
    GlobalVar: lambda e, w: None,
    ValDef: lambda e, w: (w.put_u32(e.id), serialize_expr(e.rhs, w)),
    ValUse: lambda e, w: w.put_u32(e.id),
    BlockValue: _write_block,
    FuncValue: _write_func_value,
    Apply: lambda e, w: (serialize_expr(e.func, w), _write_exprs(e.args, w)),
    If: _write_children("condition", "true_branch", "false_branch"),
    BinOp: _write_bin_op,
    Xor: _write_children("left", "right"),
    Exponentiate: _write_children("left", "right"),
    MultiplyGroup: _write_children("left", "right"),
    Upcast: lambda e, w: (serialize_expr(e.input, w), serialize_type(e.tpe, w)),
    Downcast: lambda e, w: (serialize_expr(e.input, w), serialize_type(e.tpe, w)),
    Collection: _write_collection,
    ByIndex: lambda e, w: (serialize_expr(e.input, w), serialize_expr(e.index, w), _write_opt(e.default, w)),
    Slice: _write_children("input", "from_", "until"),
    Append: _write_children("input", "col2"),
    Map: _write_children("input", "mapper"),
    Filter: _write_children("input", "condition"),
    Exists: _write_children("input", "condition"),
    ForAll: _write_children("input", "condition"),
    Fold: _write_children("input", "zero", "fold_op"),
    Tuple: lambda e, w: (w.put_u8(len(e.items)), [serialize_expr(it, w) for it in e.items]),
    SelectField: lambda e, w: (serialize_expr(e.input, w), w.put_u8(e.field_index)),
    ExtractRegisterAs: lambda e, w: (serialize_expr(e.input, w), w.put_i8(e.register_id), serialize_type(e.elem_tpe, w)),
    OptionGetOrElse: _write_children("input", "default"),
    GetVar: lambda e, w: (w.put_u8(e.var_id), serialize_type(e.var_tpe, w)),
    DeserializeContext: lambda e, w: (serialize_type(e.tpe, w), w.put_u8(e.id)),
    DeserializeRegister: lambda e, w: (w.put_u8(e.reg), serialize_type(e.tpe, w), _write_opt(e.default, w)),
    SubstConstants: _write_children("script_bytes", "positions", "new_values"),
    SigmaAnd: lambda e, w: _write_exprs(e.items, w),
    SigmaOr: lambda e, w: _write_exprs(e.items, w),
    Atleast: _write_children("bound", "input"),
    CreateProveDhTuple: _write_children("g", "h", "u", "v"),
    PropertyCall: _write_property_call,
    MethodCall: _write_method_call,
}


def serialize_expr(expr: Expr, w: SigmaByteWriter) -> None:
    """Write an expression node (opcode, then fields)."""
    if isinstance(expr, Constant):
        if w.constant_store is not None:
            placeholder = w.constant_store.put(expr)
            w.put_u8(OpCode.CONSTANT_PLACEHOLDER)
            w.put_u32(placeholder.id)
        else:
            serialize_constant(expr.value, w)
        return

    if isinstance(expr, Collection) and expr.elem_tpe == SBoolean and all(_is_bool_const(it) for it in expr.items):
        w.put_u8(OpCode.COLL_OF_BOOL_CONST)
        w.put_u16(len(expr.items))
        w.put_bits([it.v for it in expr.items])
        return

    w.put_u8(expr.op_code)
    if isinstance(expr, UnaryOp):
        serialize_expr(expr.input, w)
        return
    try:
        writer = _WRITERS[type(expr)]
    except KeyError:
        raise ValueError(f"No serializer for node {type(expr).__name__}") from None
    writer(expr, w)


# --- Parsers ---

def _read_exprs(r: SigmaByteReader) -> tuple[Expr, ...]:
    n = r.get_u32()
    return tuple(parse_expr(r) for _ in range(n))


def _read_opt(r: SigmaByteReader) -> Expr | None:
    tag = r.get_u8()
    if tag == 0:
        return None
    if tag == 1:
        return parse_expr(r)
    raise DecodeError(f"Invalid option tag: {tag}")


def _read_placeholder(r: SigmaByteReader) -> Expr:
    index = r.get_u32()
    if r.constant_store is None:
        raise DecodeError(f"Constant placeholder {index} found but the tree has no constants table")
    c = r.constant_store.get(index)
    if r.substitute_placeholders:
        return c
    return ConstantPlaceholder(index, c.tpe)


def _read_val_def(r: SigmaByteReader) -> Expr:
    val_id = r.get_u32()
    rhs = parse_expr(r)
    r.val_def_types[val_id] = rhs.tpe
    return ValDef(val_id, rhs)


def _read_val_use(r: SigmaByteReader) -> Expr:
    val_id = r.get_u32()
    try:
        tpe = r.val_def_types[val_id]
    except KeyError:
        raise DecodeError(f"ValUse of undefined id {val_id}") from None
    return ValUse(val_id, tpe)


def _read_block(r: SigmaByteReader) -> Expr:
    items = _read_exprs(r)
    for it in items:
        if not isinstance(it, ValDef):
            raise DecodeError(f"BlockValue item is not a ValDef: {type(it).__name__}")
    return BlockValue(items, parse_expr(r))


def _read_func_value(r: SigmaByteReader) -> Expr:
    n = r.get_u32()
    args = []
    for _ in range(n):
        arg_id = r.get_u32()
        arg_tpe = parse_type(r)
        r.val_def_types[arg_id] = arg_tpe
        args.append((arg_id, arg_tpe))
    return FuncValue(tuple(args), parse_expr(r))


def _read_bin_op(kind: BinOpKind) -> Callable[[SigmaByteReader], Expr]:
    def read(r: SigmaByteReader) -> Expr:
        if r.peek_u8() == OpCode.COLL_OF_BOOL_CONST:
            r.get_u8()
            left, right = r.get_bits(2)
            return BinOp(kind, Constant(SBoolean, left), Constant(SBoolean, right))
        left = parse_expr(r)
        return BinOp(kind, left, parse_expr(r))
    return read


def _read_collection(r: SigmaByteReader) -> Expr:
    n = r.get_u16()
    elem_tpe = parse_type(r)
    return Collection(elem_tpe, tuple(parse_expr(r) for _ in range(n)))


def _read_bool_collection(r: SigmaByteReader) -> Expr:
    n = r.get_u16()
    return Collection(SBoolean, tuple(Constant(SBoolean, b) for b in r.get_bits(n)))


def _read_method(r: SigmaByteReader):
    type_code = r.get_u8()
    method_id = r.get_u8()
    try:
        return get_method(type_code, method_id)
    except KeyError as e:
        raise DecodeError(str(e)) from None


def _read_property_call(r: SigmaByteReader) -> Expr:
    method = _read_method(r)
    return PropertyCall(parse_expr(r), method)


def _read_method_call(r: SigmaByteReader) -> Expr:
    method = _read_method(r)
    obj = parse_expr(r)
    return MethodCall(obj, method, _read_exprs(r))


def _read_children(cls: type, n: int) -> Callable[[SigmaByteReader], Expr]:
    def read(r: SigmaByteReader) -> Expr:
        return cls(*(parse_expr(r) for _ in range(n)))
    return read


def _read_cast(cls: type) -> Callable[[SigmaByteReader], Expr]:
    def read(r: SigmaByteReader) -> Expr:
        inp = parse_expr(r)
        return cls(inp, parse_type(r))
    return read


def _read_by_index(r: SigmaByteReader) -> Expr:
    inp = parse_expr(r)
    index = parse_expr(r)
    return ByIndex(inp, index, _read_opt(r))


def _read_tuple(r: SigmaByteReader) -> Expr:
    n = r.get_u8()
    return Tuple(tuple(parse_expr(r) for _ in range(n)))


def _read_select_field(r: SigmaByteReader) -> Expr:
    inp = parse_expr(r)
    return SelectField(inp, r.get_u8())


def _read_extract_register_as(r: SigmaByteReader) -> Expr:
    inp = parse_expr(r)
    reg = r.get_i8()
    return ExtractRegisterAs(inp, reg, parse_type(r))


def _read_get_var(r: SigmaByteReader) -> Expr:
    var_id = r.get_u8()
    return GetVar(var_id, parse_type(r))


def _read_deserialize_context(r: SigmaByteReader) -> Expr:
    tpe = parse_type(r)
    return DeserializeContext(tpe, r.get_u8())


def _read_deserialize_register(r: SigmaByteReader) -> Expr:
    reg = r.get_u8()
    tpe = parse_type(r)
    return DeserializeRegister(reg, tpe, _read_opt(r))


_UNARY_NODES: list[type[UnaryOp]] = [
    LogicalNot, Negation, BitInversion, And, Or, SizeOf, CalcBlake2b256, CalcSha256,
    LongToByteArray, ByteArrayToLong, ByteArrayToBigInt, DecodePoint, CreateProveDlog,
    BoolToSigmaProp, SigmaPropBytes, ExtractAmount, ExtractScriptBytes, ExtractBytes,
    ExtractBytesWithNoRef, ExtractId, ExtractCreationInfo, OptionGet, OptionIsDefined,
]

_PARSERS: dict[int, Callable[[SigmaByteReader], Expr]] = {
    OpCode.CONSTANT_PLACEHOLDER: _read_placeholder,
    OpCode.TRUE: lambda r: Constant(SBoolean, True),
    OpCode.FALSE: lambda r: Constant(SBoolean, False),
    OpCode.UNIT: lambda r: Constant(SUnit, ()),
    OpCode.VAL_DEF: _read_val_def,
    OpCode.VAL_USE: _read_val_use,
    OpCode.BLOCK_VALUE: _read_block,
    OpCode.FUNC_VALUE: _read_func_value,
    OpCode.FUNC_APPLY: lambda r: Apply(parse_expr(r), _read_exprs(r)),
    OpCode.IF: _read_children(If, 3),
    OpCode.XOR: _read_children(Xor, 2),
    OpCode.EXPONENTIATE: _read_children(Exponentiate, 2),
    OpCode.MULTIPLY_GROUP: _read_children(MultiplyGroup, 2),
    OpCode.UPCAST: _read_cast(Upcast),
    OpCode.DOWNCAST: _read_cast(Downcast),
    OpCode.COLL: _read_collection,
    OpCode.COLL_OF_BOOL_CONST: _read_bool_collection,
    OpCode.BY_INDEX: _read_by_index,
    OpCode.SLICE: _read_children(Slice, 3),
    OpCode.APPEND: _read_children(Append, 2),
    OpCode.MAP: _read_children(Map, 2),
    OpCode.FILTER: _read_children(Filter, 2),
    OpCode.EXISTS: _read_children(Exists, 2),
    OpCode.FOR_ALL: _read_children(ForAll, 2),
    OpCode.FOLD: _read_children(Fold, 3),
    OpCode.TUPLE: _read_tuple,
    OpCode.SELECT_FIELD: _read_select_field,
    OpCode.EXTRACT_REGISTER_AS: _read_extract_register_as,
    OpCode.OPTION_GET_OR_ELSE: _read_children(OptionGetOrElse, 2),
    OpCode.GET_VAR: _read_get_var,
    OpCode.DESERIALIZE_CONTEXT: _read_deserialize_context,
    OpCode.DESERIALIZE_REGISTER: _read_deserialize_register,
    OpCode.SUBST_CONSTANTS: _read_children(SubstConstants, 3),
    OpCode.SIGMA_AND: lambda r: SigmaAnd(_read_exprs(r)),
    OpCode.SIGMA_OR: lambda r: SigmaOr(_read_exprs(r)),
    OpCode.ATLEAST: _read_children(Atleast, 2),
    OpCode.PROVE_DIFFIE_HELLMAN_TUPLE: _read_children(CreateProveDhTuple, 4),
    OpCode.PROPERTY_CALL: _read_property_call,
    OpCode.METHOD_CALL: _read_method_call,
}
_PARSERS.update({kind.op_code: (lambda r, k=kind: GlobalVar(k)) for kind in GlobalVarKind})
_PARSERS.update({kind.value: _read_bin_op(kind) for kind in BinOpKind})
_PARSERS.update({cls.op_code: _read_children(cls, 1) for cls in _UNARY_NODES})


def parse_expr(r: SigmaByteReader) -> Expr:
    """Read one expression node.

    Raises:
        DecodeError: On unknown opcode, truncated input, ill-typed node or bad placeholder
    """
    tag = r.peek_u8()
    if is_constant_code(tag):
        value = parse_constant(r)
        try:
            return Constant.of(value)
        except TypeCheckError as e:
            raise DecodeError(str(e)) from e

    r.get_u8()
    try:
        parser = _PARSERS[tag]
    except KeyError:
        raise DecodeError(f"Unknown opcode: {tag}") from None
    try:
        return parser(r)
    except TypeCheckError as e:
        raise DecodeError(f"Ill-typed node (opcode {tag}): {e}") from e


# --- Entry Points ---

def expr_to_bytes(expr: Expr, constant_store: ConstantStore | None = None) -> bytes:
    w = SigmaByteWriter(constant_store)
    serialize_expr(expr, w)
    return w.to_bytes()


def expr_from_bytes(
    data: bytes,
    constant_store: ConstantStore | None = None,
    substitute_placeholders: bool = False,
) -> Expr:
    """Parse a complete expression from bytes.

    Raises:
        DecodeError: On any malformed input, including nesting too deep to parse
    """
    r = SigmaByteReader(data, constant_store, substitute_placeholders)
    try:
        return parse_expr(r)
    except RecursionError:
        logger.warning("Expression nesting too deep while parsing %d bytes", len(data))
        raise DecodeError("Expression nesting too deep") from None
