"""Typed expression tree.

Nodes are frozen dataclasses; each node owns its children and never forms a
cycle. Every node has a fixed opcode (see ergotree.opcodes) and a static type
`tpe` computed from its children when it is built. Construction type-checks
the children and raises TypeCheckError for ill-typed trees, so any tree that
exists is well typed.

Node groups:
    constants and placeholders     Constant, ConstantPlaceholder
    context globals                GlobalVar (HEIGHT, INPUTS, SELF, ...)
    blocks and functions           ValDef, ValUse, BlockValue, FuncValue, Apply
    control                        If
    operators                      BinOp, unary operators, Upcast/Downcast
    collections                    Collection, Map, Filter, Fold, ByIndex, ...
    tuples                         Tuple, SelectField
    boxes and options              Extract*, OptionGet, GetVar, ...
    sigma                          SigmaAnd, SigmaOr, Atleast, CreateProveDlog, ...
    object calls                   PropertyCall, MethodCall
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, ClassVar

from ergotree.errors import TypeCheckError
from ergotree.methods import SMethod
from ergotree.opcodes import OpCode
from ergotree.types import (
    SAvlTree,
    SBigInt,
    SBoolean,
    SBox,
    SByteArray,
    SColl,
    SContext,
    SFunc,
    SGlobal,
    SGroupElement,
    SInt,
    SLong,
    SOption,
    SSigmaProp,
    STuple,
    SType,
    NUMERIC_BITS,
)
from ergotree.values import Value, check_value

MAX_REGISTER_ID = 9


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise TypeCheckError(msg)


class Expr:
    """Base class of expression nodes.

    Subclasses provide `op_code` and `tpe`, either as dataclass fields, class
    attributes or properties.
    """

    op_code: int
    tpe: SType


# --- Constants ---

@dataclass(frozen=True)
class Constant(Expr):
    """Literal value; serialized as its type code followed by its data, without an opcode."""

    tpe: SType
    v: Any

    def __post_init__(self):
        _require(check_value(self.tpe, self.v), f"Constant {self.v!r} is not a value of type {self.tpe!r}")

    @property
    def value(self) -> Value:
        return Value(self.tpe, self.v)

    @classmethod
    def of(cls, value: Value) -> Constant:
        return cls(value.tpe, value.v)


@dataclass(frozen=True)
class ConstantPlaceholder(Expr):
    """Reference into the ErgoTree's segregated constants table."""

    id: int
    tpe: SType

    op_code: ClassVar[int] = OpCode.CONSTANT_PLACEHOLDER


# --- Context Globals ---

class GlobalVarKind(Enum):
    """Nullary nodes reading the evaluation context; value is (opcode, type)."""

    HEIGHT = (OpCode.HEIGHT, SInt)
    INPUTS = (OpCode.INPUTS, SColl(SBox))
    OUTPUTS = (OpCode.OUTPUTS, SColl(SBox))
    SELF = (OpCode.SELF, SBox)
    MINER_PUBKEY = (OpCode.MINER_PUBKEY, SByteArray)
    LAST_BLOCK_UTXO_ROOT_HASH = (OpCode.LAST_BLOCK_UTXO_ROOT_HASH, SAvlTree)
    GROUP_GENERATOR = (OpCode.GROUP_GENERATOR, SGroupElement)
    CONTEXT = (OpCode.CONTEXT, SContext)
    GLOBAL = (OpCode.GLOBAL, SGlobal)

    def __init__(self, op_code: int, tpe: SType):
        self.op_code = op_code
        self.tpe = tpe


@dataclass(frozen=True)
class GlobalVar(Expr):
    kind: GlobalVarKind

    @property
    def op_code(self) -> int:
        return self.kind.op_code

    @property
    def tpe(self) -> SType:
        return self.kind.tpe


HEIGHT = GlobalVar(GlobalVarKind.HEIGHT)
INPUTS = GlobalVar(GlobalVarKind.INPUTS)
OUTPUTS = GlobalVar(GlobalVarKind.OUTPUTS)
SELF_BOX = GlobalVar(GlobalVarKind.SELF)
MINER_PUBKEY = GlobalVar(GlobalVarKind.MINER_PUBKEY)
LAST_BLOCK_UTXO_ROOT_HASH = GlobalVar(GlobalVarKind.LAST_BLOCK_UTXO_ROOT_HASH)
GROUP_GENERATOR = GlobalVar(GlobalVarKind.GROUP_GENERATOR)
CONTEXT = GlobalVar(GlobalVarKind.CONTEXT)
GLOBAL = GlobalVar(GlobalVarKind.GLOBAL)


# --- Blocks and Functions ---

@dataclass(frozen=True)
class ValDef(Expr):
    """Let-binding of `rhs` under a positional id; only valid inside a BlockValue."""

    id: int
    rhs: Expr

    op_code: ClassVar[int] = OpCode.VAL_DEF

    @property
    def tpe(self) -> SType:
        return self.rhs.tpe


@dataclass(frozen=True)
class ValUse(Expr):
    id: int
    tpe: SType

    op_code: ClassVar[int] = OpCode.VAL_USE


@dataclass(frozen=True)
class BlockValue(Expr):
    items: tuple[ValDef, ...]
    result: Expr

    op_code: ClassVar[int] = OpCode.BLOCK_VALUE

    def __post_init__(self):
        _require(all(isinstance(it, ValDef) for it in self.items), "BlockValue items must be ValDef nodes")

    @property
    def tpe(self) -> SType:
        return self.result.tpe


@dataclass(frozen=True)
class FuncValue(Expr):
    """Lambda with (id, type) arguments."""

    args: tuple[tuple[int, SType], ...]
    body: Expr

    op_code: ClassVar[int] = OpCode.FUNC_VALUE

    @property
    def tpe(self) -> SType:
        return SFunc(tuple(t for _, t in self.args), self.body.tpe)


@dataclass(frozen=True)
class Apply(Expr):
    func: Expr
    args: tuple[Expr, ...]

    op_code: ClassVar[int] = OpCode.FUNC_APPLY

    def __post_init__(self):
        ftpe = self.func.tpe
        _require(isinstance(ftpe, SFunc), f"Apply: {ftpe!r} is not a function type")
        arg_tpes = tuple(a.tpe for a in self.args)
        _require(arg_tpes == ftpe.domain, f"Apply: arguments {arg_tpes!r} do not match {ftpe.domain!r}")

    @property
    def tpe(self) -> SType:
        return self.func.tpe.range


# --- Control ---

@dataclass(frozen=True)
class If(Expr):
    condition: Expr
    true_branch: Expr
    false_branch: Expr

    op_code: ClassVar[int] = OpCode.IF

    def __post_init__(self):
        _require(self.condition.tpe == SBoolean, f"If: condition must be Boolean, got {self.condition.tpe!r}")
        _require(
            self.true_branch.tpe == self.false_branch.tpe,
            f"If: branch types differ: {self.true_branch.tpe!r} vs {self.false_branch.tpe!r}",
        )

    @property
    def tpe(self) -> SType:
        return self.true_branch.tpe


# --- Binary Operators ---

class BinOpKind(IntEnum):
    PLUS = OpCode.PLUS
    MINUS = OpCode.MINUS
    MULTIPLY = OpCode.MULTIPLY
    DIVISION = OpCode.DIVISION
    MODULO = OpCode.MODULO
    MIN = OpCode.MIN
    MAX = OpCode.MAX
    LT = OpCode.LT
    LE = OpCode.LE
    GT = OpCode.GT
    GE = OpCode.GE
    EQ = OpCode.EQ
    NEQ = OpCode.NEQ
    BIN_AND = OpCode.BIN_AND
    BIN_OR = OpCode.BIN_OR
    BIN_XOR = OpCode.BIN_XOR
    BIT_OR = OpCode.BIT_OR
    BIT_AND = OpCode.BIT_AND
    BIT_XOR = OpCode.BIT_XOR


ARITH_OPS = frozenset({
    BinOpKind.PLUS, BinOpKind.MINUS, BinOpKind.MULTIPLY, BinOpKind.DIVISION,
    BinOpKind.MODULO, BinOpKind.MIN, BinOpKind.MAX,
})
BIT_OPS = frozenset({BinOpKind.BIT_OR, BinOpKind.BIT_AND, BinOpKind.BIT_XOR})
ORDER_OPS = frozenset({BinOpKind.LT, BinOpKind.LE, BinOpKind.GT, BinOpKind.GE})
EQUALITY_OPS = frozenset({BinOpKind.EQ, BinOpKind.NEQ})
LOGICAL_OPS = frozenset({BinOpKind.BIN_AND, BinOpKind.BIN_OR, BinOpKind.BIN_XOR})


@dataclass(frozen=True)
class BinOp(Expr):
    kind: BinOpKind
    left: Expr
    right: Expr

    def __post_init__(self):
        lt, rt = self.left.tpe, self.right.tpe
        _require(lt == rt, f"{self.kind.name}: operand types differ: {lt!r} vs {rt!r}")
        if self.kind in ARITH_OPS or self.kind in BIT_OPS or self.kind in ORDER_OPS:
            _require(lt.is_numeric(), f"{self.kind.name}: numeric operands required, got {lt!r}")
        elif self.kind in LOGICAL_OPS:
            _require(lt == SBoolean, f"{self.kind.name}: Boolean operands required, got {lt!r}")

    @property
    def op_code(self) -> int:
        return int(self.kind)

    @property
    def tpe(self) -> SType:
        if self.kind in ARITH_OPS or self.kind in BIT_OPS:
            return self.left.tpe
        return SBoolean


def plus(left: Expr, right: Expr) -> BinOp:
    return BinOp(BinOpKind.PLUS, left, right)


def eq(left: Expr, right: Expr) -> BinOp:
    return BinOp(BinOpKind.EQ, left, right)


# --- Unary Operators ---

@dataclass(frozen=True)
class UnaryOp(Expr):
    """Single-input node; subclasses declare input and result types."""

    input: Expr

    input_type: ClassVar[SType | None] = None
    result_type: ClassVar[SType | None] = None

    def __post_init__(self):
        if self.input_type is not None:
            _require(
                self.input.tpe == self.input_type,
                f"{type(self).__name__}: expected {self.input_type!r} input, got {self.input.tpe!r}",
            )
        self._check_input()

    def _check_input(self) -> None:
        pass

    @property
    def tpe(self) -> SType:
        return self.result_type


def _numeric_input(node: UnaryOp) -> None:
    _require(node.input.tpe.is_numeric(), f"{type(node).__name__}: numeric input required, got {node.input.tpe!r}")


def _coll_input(node: UnaryOp) -> None:
    _require(isinstance(node.input.tpe, SColl), f"{type(node).__name__}: collection input required, got {node.input.tpe!r}")


def _option_input(node: UnaryOp) -> None:
    _require(isinstance(node.input.tpe, SOption), f"{type(node).__name__}: Option input required, got {node.input.tpe!r}")


@dataclass(frozen=True)
class LogicalNot(UnaryOp):
    op_code: ClassVar[int] = OpCode.LOGICAL_NOT
    input_type = SBoolean
    result_type = SBoolean


@dataclass(frozen=True)
class Negation(UnaryOp):
    op_code: ClassVar[int] = OpCode.NEGATION

    def _check_input(self) -> None:
        _numeric_input(self)

    @property
    def tpe(self) -> SType:
        return self.input.tpe


@dataclass(frozen=True)
class BitInversion(UnaryOp):
    op_code: ClassVar[int] = OpCode.BIT_INVERSION

    def _check_input(self) -> None:
        _numeric_input(self)

    @property
    def tpe(self) -> SType:
        return self.input.tpe


@dataclass(frozen=True)
class And(UnaryOp):
    """Conjunction of all elements of a Coll[Boolean]."""

    op_code: ClassVar[int] = OpCode.AND
    input_type = SColl(SBoolean)
    result_type = SBoolean


@dataclass(frozen=True)
class Or(UnaryOp):
    """Disjunction of all elements of a Coll[Boolean]."""

    op_code: ClassVar[int] = OpCode.OR
    input_type = SColl(SBoolean)
    result_type = SBoolean


@dataclass(frozen=True)
class SizeOf(UnaryOp):
    op_code: ClassVar[int] = OpCode.SIZE_OF
    result_type = SInt

    def _check_input(self) -> None:
        _coll_input(self)


@dataclass(frozen=True)
class CalcBlake2b256(UnaryOp):
    op_code: ClassVar[int] = OpCode.CALC_BLAKE2B256
    input_type = SByteArray
    result_type = SByteArray


@dataclass(frozen=True)
class CalcSha256(UnaryOp):
    op_code: ClassVar[int] = OpCode.CALC_SHA256
    input_type = SByteArray
    result_type = SByteArray


@dataclass(frozen=True)
class LongToByteArray(UnaryOp):
    op_code: ClassVar[int] = OpCode.LONG_TO_BYTE_ARRAY
    input_type = SLong
    result_type = SByteArray


@dataclass(frozen=True)
class ByteArrayToLong(UnaryOp):
    op_code: ClassVar[int] = OpCode.BYTE_ARRAY_TO_LONG
    input_type = SByteArray
    result_type = SLong


@dataclass(frozen=True)
class ByteArrayToBigInt(UnaryOp):
    op_code: ClassVar[int] = OpCode.BYTE_ARRAY_TO_BIGINT
    input_type = SByteArray
    result_type = SBigInt


@dataclass(frozen=True)
class DecodePoint(UnaryOp):
    op_code: ClassVar[int] = OpCode.DECODE_POINT
    input_type = SByteArray
    result_type = SGroupElement


@dataclass(frozen=True)
class CreateProveDlog(UnaryOp):
    op_code: ClassVar[int] = OpCode.PROVE_DLOG
    input_type = SGroupElement
    result_type = SSigmaProp


@dataclass(frozen=True)
class BoolToSigmaProp(UnaryOp):
    op_code: ClassVar[int] = OpCode.BOOL_TO_SIGMA_PROP
    input_type = SBoolean
    result_type = SSigmaProp


@dataclass(frozen=True)
class SigmaPropBytes(UnaryOp):
    op_code: ClassVar[int] = OpCode.SIGMA_PROP_BYTES
    input_type = SSigmaProp
    result_type = SByteArray


@dataclass(frozen=True)
class ExtractAmount(UnaryOp):
    op_code: ClassVar[int] = OpCode.EXTRACT_AMOUNT
    input_type = SBox
    result_type = SLong


@dataclass(frozen=True)
class ExtractScriptBytes(UnaryOp):
    op_code: ClassVar[int] = OpCode.EXTRACT_SCRIPT_BYTES
    input_type = SBox
    result_type = SByteArray


@dataclass(frozen=True)
class ExtractBytes(UnaryOp):
    op_code: ClassVar[int] = OpCode.EXTRACT_BYTES
    input_type = SBox
    result_type = SByteArray


@dataclass(frozen=True)
class ExtractBytesWithNoRef(UnaryOp):
    op_code: ClassVar[int] = OpCode.EXTRACT_BYTES_WITH_NO_REF
    input_type = SBox
    result_type = SByteArray


@dataclass(frozen=True)
class ExtractId(UnaryOp):
    op_code: ClassVar[int] = OpCode.EXTRACT_ID
    input_type = SBox
    result_type = SByteArray


@dataclass(frozen=True)
class ExtractCreationInfo(UnaryOp):
    op_code: ClassVar[int] = OpCode.EXTRACT_CREATION_INFO
    input_type = SBox
    result_type = STuple((SInt, SByteArray))


@dataclass(frozen=True)
class OptionGet(UnaryOp):
    op_code: ClassVar[int] = OpCode.OPTION_GET

    def _check_input(self) -> None:
        _option_input(self)

    @property
    def tpe(self) -> SType:
        return self.input.tpe.elem


@dataclass(frozen=True)
class OptionIsDefined(UnaryOp):
    op_code: ClassVar[int] = OpCode.OPTION_IS_DEFINED
    result_type = SBoolean

    def _check_input(self) -> None:
        _option_input(self)


# --- Other Operators ---

@dataclass(frozen=True)
class Xor(Expr):
    """Element-wise XOR of two byte arrays."""

    left: Expr
    right: Expr

    op_code: ClassVar[int] = OpCode.XOR

    def __post_init__(self):
        _require(
            self.left.tpe == SByteArray and self.right.tpe == SByteArray,
            f"Xor: Coll[Byte] operands required, got {self.left.tpe!r}, {self.right.tpe!r}",
        )

    @property
    def tpe(self) -> SType:
        return SByteArray


@dataclass(frozen=True)
class Upcast(Expr):
    input: Expr
    tpe: SType

    op_code: ClassVar[int] = OpCode.UPCAST

    def __post_init__(self):
        _require(self.input.tpe.is_numeric() and self.tpe.is_numeric(), "Upcast: numeric types required")
        _require(
            NUMERIC_BITS[self.tpe] >= NUMERIC_BITS[self.input.tpe],
            f"Upcast: cannot upcast {self.input.tpe!r} to {self.tpe!r}",
        )


@dataclass(frozen=True)
class Downcast(Expr):
    input: Expr
    tpe: SType

    op_code: ClassVar[int] = OpCode.DOWNCAST

    def __post_init__(self):
        _require(self.input.tpe.is_numeric() and self.tpe.is_numeric(), "Downcast: numeric types required")
        _require(
            NUMERIC_BITS[self.tpe] <= NUMERIC_BITS[self.input.tpe],
            f"Downcast: cannot downcast {self.input.tpe!r} to {self.tpe!r}",
        )


@dataclass(frozen=True)
class Exponentiate(Expr):
    left: Expr
    right: Expr

    op_code: ClassVar[int] = OpCode.EXPONENTIATE

    def __post_init__(self):
        _require(
            self.left.tpe == SGroupElement and self.right.tpe == SBigInt,
            f"Exponentiate: (GroupElement, BigInt) required, got {self.left.tpe!r}, {self.right.tpe!r}",
        )

    @property
    def tpe(self) -> SType:
        return SGroupElement


@dataclass(frozen=True)
class MultiplyGroup(Expr):
    left: Expr
    right: Expr

    op_code: ClassVar[int] = OpCode.MULTIPLY_GROUP

    def __post_init__(self):
        _require(
            self.left.tpe == SGroupElement and self.right.tpe == SGroupElement,
            f"MultiplyGroup: GroupElement operands required, got {self.left.tpe!r}, {self.right.tpe!r}",
        )

    @property
    def tpe(self) -> SType:
        return SGroupElement


# --- Collections ---

@dataclass(frozen=True)
class Collection(Expr):
    """Collection literal built from element expressions."""

    elem_tpe: SType
    items: tuple[Expr, ...]

    op_code: ClassVar[int] = OpCode.COLL

    def __post_init__(self):
        for it in self.items:
            _require(it.tpe == self.elem_tpe, f"Collection: item type {it.tpe!r} is not {self.elem_tpe!r}")

    @property
    def tpe(self) -> SType:
        return SColl(self.elem_tpe)


def _coll_elem(node: Expr, e: Expr) -> SType:
    _require(isinstance(e.tpe, SColl), f"{type(node).__name__}: collection input required, got {e.tpe!r}")
    return e.tpe.elem


def _check_predicate(node: Expr, func: Expr, elem: SType, result: SType | None) -> SFunc:
    ftpe = func.tpe
    _require(
        isinstance(ftpe, SFunc) and ftpe.domain == (elem,),
        f"{type(node).__name__}: expected a function of ({elem!r}), got {ftpe!r}",
    )
    if result is not None:
        _require(ftpe.range == result, f"{type(node).__name__}: function must return {result!r}, got {ftpe.range!r}")
    return ftpe


@dataclass(frozen=True)
class ByIndex(Expr):
    input: Expr
    index: Expr
    default: Expr | None = None

    op_code: ClassVar[int] = OpCode.BY_INDEX

    def __post_init__(self):
        elem = _coll_elem(self, self.input)
        _require(self.index.tpe == SInt, f"ByIndex: Int index required, got {self.index.tpe!r}")
        if self.default is not None:
            _require(self.default.tpe == elem, f"ByIndex: default must be {elem!r}, got {self.default.tpe!r}")

    @property
    def tpe(self) -> SType:
        return self.input.tpe.elem


@dataclass(frozen=True)
class Slice(Expr):
    input: Expr
    from_: Expr
    until: Expr

    op_code: ClassVar[int] = OpCode.SLICE

    def __post_init__(self):
        _coll_elem(self, self.input)
        _require(self.from_.tpe == SInt and self.until.tpe == SInt, "Slice: Int bounds required")

    @property
    def tpe(self) -> SType:
        return self.input.tpe


@dataclass(frozen=True)
class Append(Expr):
    input: Expr
    col2: Expr

    op_code: ClassVar[int] = OpCode.APPEND

    def __post_init__(self):
        _coll_elem(self, self.input)
        _require(self.input.tpe == self.col2.tpe, f"Append: types differ: {self.input.tpe!r} vs {self.col2.tpe!r}")

    @property
    def tpe(self) -> SType:
        return self.input.tpe


@dataclass(frozen=True)
class Map(Expr):
    input: Expr
    mapper: Expr

    op_code: ClassVar[int] = OpCode.MAP

    def __post_init__(self):
        _check_predicate(self, self.mapper, _coll_elem(self, self.input), None)

    @property
    def tpe(self) -> SType:
        return SColl(self.mapper.tpe.range)


@dataclass(frozen=True)
class Filter(Expr):
    input: Expr
    condition: Expr

    op_code: ClassVar[int] = OpCode.FILTER

    def __post_init__(self):
        _check_predicate(self, self.condition, _coll_elem(self, self.input), SBoolean)

    @property
    def tpe(self) -> SType:
        return self.input.tpe


@dataclass(frozen=True)
class Exists(Expr):
    input: Expr
    condition: Expr

    op_code: ClassVar[int] = OpCode.EXISTS

    def __post_init__(self):
        _check_predicate(self, self.condition, _coll_elem(self, self.input), SBoolean)

    @property
    def tpe(self) -> SType:
        return SBoolean


@dataclass(frozen=True)
class ForAll(Expr):
    input: Expr
    condition: Expr

    op_code: ClassVar[int] = OpCode.FOR_ALL

    def __post_init__(self):
        _check_predicate(self, self.condition, _coll_elem(self, self.input), SBoolean)

    @property
    def tpe(self) -> SType:
        return SBoolean


@dataclass(frozen=True)
class Fold(Expr):
    """Left fold; `fold_op` takes one (accumulator, element) tuple argument."""

    input: Expr
    zero: Expr
    fold_op: Expr

    op_code: ClassVar[int] = OpCode.FOLD

    def __post_init__(self):
        elem = _coll_elem(self, self.input)
        acc = self.zero.tpe
        _check_predicate(self, self.fold_op, STuple((acc, elem)), acc)

    @property
    def tpe(self) -> SType:
        return self.zero.tpe


# --- Tuples ---

@dataclass(frozen=True)
class Tuple(Expr):
    items: tuple[Expr, ...]

    op_code: ClassVar[int] = OpCode.TUPLE

    def __post_init__(self):
        _require(2 <= len(self.items) <= 255, f"Tuple: 2..255 items required, got {len(self.items)}")

    @property
    def tpe(self) -> SType:
        return STuple(tuple(it.tpe for it in self.items))


@dataclass(frozen=True)
class SelectField(Expr):
    """Tuple field access; `field_index` is 1-based."""

    input: Expr
    field_index: int

    op_code: ClassVar[int] = OpCode.SELECT_FIELD

    def __post_init__(self):
        t = self.input.tpe
        _require(isinstance(t, STuple), f"SelectField: tuple input required, got {t!r}")
        _require(1 <= self.field_index <= len(t.items), f"SelectField: index {self.field_index} out of bounds for {t!r}")

    @property
    def tpe(self) -> SType:
        return self.input.tpe.items[self.field_index - 1]


# --- Boxes, Options and Context Variables ---

@dataclass(frozen=True)
class ExtractRegisterAs(Expr):
    input: Expr
    register_id: int
    elem_tpe: SType

    op_code: ClassVar[int] = OpCode.EXTRACT_REGISTER_AS

    def __post_init__(self):
        _require(self.input.tpe == SBox, f"ExtractRegisterAs: Box input required, got {self.input.tpe!r}")
        _require(0 <= self.register_id <= MAX_REGISTER_ID, f"ExtractRegisterAs: invalid register {self.register_id}")

    @property
    def tpe(self) -> SType:
        return SOption(self.elem_tpe)


@dataclass(frozen=True)
class OptionGetOrElse(Expr):
    input: Expr
    default: Expr

    op_code: ClassVar[int] = OpCode.OPTION_GET_OR_ELSE

    def __post_init__(self):
        t = self.input.tpe
        _require(isinstance(t, SOption), f"OptionGetOrElse: Option input required, got {t!r}")
        _require(t.elem == self.default.tpe, f"OptionGetOrElse: default must be {t.elem!r}, got {self.default.tpe!r}")

    @property
    def tpe(self) -> SType:
        return self.input.tpe.elem


@dataclass(frozen=True)
class GetVar(Expr):
    """Context extension variable, decoded as `var_tpe`."""

    var_id: int
    var_tpe: SType

    op_code: ClassVar[int] = OpCode.GET_VAR

    def __post_init__(self):
        _require(0 <= self.var_id <= 255, f"GetVar: invalid variable id {self.var_id}")

    @property
    def tpe(self) -> SType:
        return SOption(self.var_tpe)


@dataclass(frozen=True)
class DeserializeContext(Expr):
    """Context extension variable holding serialized expression bytes, evaluated in place."""

    tpe: SType
    id: int

    op_code: ClassVar[int] = OpCode.DESERIALIZE_CONTEXT


@dataclass(frozen=True)
class DeserializeRegister(Expr):
    """SELF register holding serialized expression bytes, evaluated in place."""

    reg: int
    tpe: SType
    default: Expr | None = None

    op_code: ClassVar[int] = OpCode.DESERIALIZE_REGISTER

    def __post_init__(self):
        _require(0 <= self.reg <= MAX_REGISTER_ID, f"DeserializeRegister: invalid register {self.reg}")
        if self.default is not None:
            _require(self.default.tpe == self.tpe, "DeserializeRegister: default type mismatch")


@dataclass(frozen=True)
class SubstConstants(Expr):
    """Serialized ErgoTree with the constants at `positions` replaced by `new_values`."""

    script_bytes: Expr
    positions: Expr
    new_values: Expr

    op_code: ClassVar[int] = OpCode.SUBST_CONSTANTS

    def __post_init__(self):
        _require(self.script_bytes.tpe == SByteArray, "SubstConstants: script bytes must be Coll[Byte]")
        _require(self.positions.tpe == SColl(SInt), "SubstConstants: positions must be Coll[Int]")
        _require(isinstance(self.new_values.tpe, SColl), "SubstConstants: new values must be a collection")

    @property
    def tpe(self) -> SType:
        return SByteArray


# --- Sigma ---

def _check_sigma_items(node: Expr, items: tuple[Expr, ...]) -> None:
    _require(len(items) >= 2, f"{type(node).__name__}: at least 2 items required")
    for it in items:
        _require(it.tpe == SSigmaProp, f"{type(node).__name__}: SigmaProp items required, got {it.tpe!r}")


@dataclass(frozen=True)
class SigmaAnd(Expr):
    items: tuple[Expr, ...]

    op_code: ClassVar[int] = OpCode.SIGMA_AND

    def __post_init__(self):
        _check_sigma_items(self, self.items)

    @property
    def tpe(self) -> SType:
        return SSigmaProp


@dataclass(frozen=True)
class SigmaOr(Expr):
    items: tuple[Expr, ...]

    op_code: ClassVar[int] = OpCode.SIGMA_OR

    def __post_init__(self):
        _check_sigma_items(self, self.items)

    @property
    def tpe(self) -> SType:
        return SSigmaProp


@dataclass(frozen=True)
class Atleast(Expr):
    """k-of-n threshold over a collection of sigma propositions."""

    bound: Expr
    input: Expr

    op_code: ClassVar[int] = OpCode.ATLEAST

    def __post_init__(self):
        _require(self.bound.tpe == SInt, f"Atleast: Int bound required, got {self.bound.tpe!r}")
        _require(self.input.tpe == SColl(SSigmaProp), f"Atleast: Coll[SigmaProp] required, got {self.input.tpe!r}")

    @property
    def tpe(self) -> SType:
        return SSigmaProp


@dataclass(frozen=True)
class CreateProveDhTuple(Expr):
    g: Expr
    h: Expr
    u: Expr
    v: Expr

    op_code: ClassVar[int] = OpCode.PROVE_DIFFIE_HELLMAN_TUPLE

    def __post_init__(self):
        for e in (self.g, self.h, self.u, self.v):
            _require(e.tpe == SGroupElement, f"CreateProveDhTuple: GroupElement required, got {e.tpe!r}")

    @property
    def tpe(self) -> SType:
        return SSigmaProp


# --- Object Calls ---

@dataclass(frozen=True)
class PropertyCall(Expr):
    obj: Expr
    method: SMethod

    op_code: ClassVar[int] = OpCode.PROPERTY_CALL

    def __post_init__(self):
        _require(self.method.is_property, f"PropertyCall: {self.method.name} takes arguments")
        self.method.result_type(self.obj.tpe)

    @property
    def tpe(self) -> SType:
        return self.method.result_type(self.obj.tpe)


@dataclass(frozen=True)
class MethodCall(Expr):
    obj: Expr
    method: SMethod
    args: tuple[Expr, ...]

    op_code: ClassVar[int] = OpCode.METHOD_CALL

    def __post_init__(self):
        self.method.result_type(self.obj.tpe, tuple(a.tpe for a in self.args))

    @property
    def tpe(self) -> SType:
        return self.method.result_type(self.obj.tpe, tuple(a.tpe for a in self.args))
