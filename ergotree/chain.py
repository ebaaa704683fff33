"""Blockchain data visible to scripts: boxes, tokens, headers and context extension."""

from __future__ import annotations

from dataclasses import dataclass, field

from ergotree.data import parse_constant, serialize_constant
from ergotree.ergo_tree import ErgoTree
from ergotree.errors import DecodeError
from ergotree.expr import Constant
from ergotree.types import SByteArray, SColl, SInt, SLong, STuple
from ergotree.values import AvlTreeData, BoxId, Value, bytes_to_coll
from primitives.group import GroupElement
from primitives.hashing import blake2b256
from primitives.vlq import SigmaByteReader, SigmaByteWriter

TOKEN_ID_SIZE = 32
TX_ID_SIZE = 32
MAX_TOKENS_COUNT = 122

# R0..R3 are mandatory (value, script, tokens, creation info); R4..R9 are free
FIRST_NON_MANDATORY_REGISTER = 4
MAX_REGISTER = 9

TOKENS_TYPE = SColl(STuple((SByteArray, SLong)))
CREATION_INFO_TYPE = STuple((SInt, SByteArray))


@dataclass(frozen=True)
class Token:
    token_id: bytes
    amount: int

    def __post_init__(self):
        if len(self.token_id) != TOKEN_ID_SIZE:
            raise ValueError(f"Token id must be {TOKEN_ID_SIZE} bytes, got {len(self.token_id)}")
        if self.amount <= 0:
            raise ValueError(f"Token amount must be positive, got {self.amount}")


# --- Boxes ---

@dataclass(frozen=True)
class ErgoBox:
    """Unspent output record.

    Attributes:
        value: Amount in nanoErgs (R0)
        ergo_tree: Guarding script (R1)
        creation_height: Height set by the creator (part of R3)
        tokens: Secondary tokens (R2)
        registers: Non-mandatory registers R4.. as constants, densely packed
        transaction_id: Id of the transaction that created the box
        index: Output index within that transaction
    """

    value: int
    ergo_tree: ErgoTree
    creation_height: int
    tokens: tuple[Token, ...] = ()
    registers: dict[int, Constant] = field(default_factory=dict)
    transaction_id: bytes = bytes(TX_ID_SIZE)
    index: int = 0

    def __post_init__(self):
        if len(self.tokens) > MAX_TOKENS_COUNT:
            raise ValueError(f"At most {MAX_TOKENS_COUNT} tokens per box, got {len(self.tokens)}")
        ids = sorted(self.registers)
        expected = list(range(FIRST_NON_MANDATORY_REGISTER, FIRST_NON_MANDATORY_REGISTER + len(ids)))
        if ids != expected or (ids and ids[-1] > MAX_REGISTER):
            raise ValueError(f"Registers must be densely packed from R4, got {ids}")

    def __hash__(self) -> int:
        return hash(self.box_id)

    @property
    def box_id(self) -> BoxId:
        return blake2b256(self.to_bytes())

    def creation_info(self) -> tuple[int, bytes]:
        return self.creation_height, self.transaction_id + self.index.to_bytes(2, "big")

    def get_register(self, register_id: int) -> Value | None:
        """Register contents as a runtime value; None if the register is empty."""
        if register_id == 0:
            return Value(SLong, self.value)
        if register_id == 1:
            return Value(SByteArray, bytes_to_coll(self.ergo_tree.to_bytes()))
        if register_id == 2:
            return Value(TOKENS_TYPE, tuple((bytes_to_coll(t.token_id), t.amount) for t in self.tokens))
        if register_id == 3:
            height, ref = self.creation_info()
            return Value(CREATION_INFO_TYPE, (height, bytes_to_coll(ref)))
        c = self.registers.get(register_id)
        return c.value if c is not None else None

    # --- Codec ---

    def _serialize_without_ref(self, w: SigmaByteWriter) -> None:
        w.put_u64(self.value)
        self.ergo_tree.serialize(w)
        w.put_u32(self.creation_height)
        w.put_u8(len(self.tokens))
        for t in self.tokens:
            w.put_bytes(t.token_id)
            w.put_u64(t.amount)
        w.put_u8(len(self.registers))
        for reg_id in sorted(self.registers):
            serialize_constant(self.registers[reg_id].value, w)

    def bytes_without_ref(self) -> bytes:
        w = SigmaByteWriter()
        self._serialize_without_ref(w)
        return w.to_bytes()

    def to_bytes(self) -> bytes:
        w = SigmaByteWriter()
        self._serialize_without_ref(w)
        w.put_bytes(self.transaction_id)
        w.put_u16(self.index)
        return w.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> ErgoBox:
        r = SigmaByteReader(data)
        value = r.get_u64()
        tree = ErgoTree.parse(r)
        creation_height = r.get_u32()
        tokens = []
        for _ in range(r.get_u8()):
            token_id = r.get_bytes(TOKEN_ID_SIZE)
            try:
                tokens.append(Token(token_id, r.get_u64()))
            except ValueError as e:
                raise DecodeError(str(e)) from e
        n_regs = r.get_u8()
        if n_regs > MAX_REGISTER - FIRST_NON_MANDATORY_REGISTER + 1:
            raise DecodeError(f"Too many registers: {n_regs}")
        registers = {}
        for i in range(n_regs):
            registers[FIRST_NON_MANDATORY_REGISTER + i] = Constant.of(parse_constant(r))
        tx_id = r.get_bytes(TX_ID_SIZE)
        index = r.get_u16()
        if not r.is_empty():
            raise DecodeError(f"{r.remaining()} trailing bytes after box")
        return cls(value, tree, creation_height, tuple(tokens), registers, tx_id, index)


# --- Headers ---

@dataclass(frozen=True)
class PreHeader:
    """Header fields of the block being built, known before mining."""

    version: int
    parent_id: bytes
    timestamp: int
    n_bits: int
    height: int
    miner_pk: GroupElement
    votes: bytes


@dataclass(frozen=True)
class Header:
    version: int
    id: bytes
    parent_id: bytes
    ad_proofs_root: bytes
    state_root: AvlTreeData
    transactions_root: bytes
    timestamp: int
    n_bits: int
    height: int
    extension_root: bytes
    miner_pk: GroupElement
    pow_onetime_pk: GroupElement
    pow_nonce: bytes
    pow_distance: int
    votes: bytes


# --- Context Extension ---

@dataclass(frozen=True)
class ContextExtension:
    """User-supplied context variables, keyed by u8 id (read by GetVar)."""

    values: dict[int, Constant] = field(default_factory=dict)

    def get(self, var_id: int) -> Constant | None:
        return self.values.get(var_id)

    def to_bytes(self) -> bytes:
        w = SigmaByteWriter()
        w.put_u8(len(self.values))
        # sorted by id so equal extensions serialize identically
        for var_id in sorted(self.values):
            w.put_u8(var_id)
            serialize_constant(self.values[var_id].value, w)
        return w.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> ContextExtension:
        r = SigmaByteReader(data)
        values = {}
        for _ in range(r.get_u8()):
            var_id = r.get_u8()
            values[var_id] = Constant.of(parse_constant(r))
        return cls(values)
