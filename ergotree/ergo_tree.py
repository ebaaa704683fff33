"""ErgoTree: the serialized spending script of a box.

Layout:

    header        1 byte: version (bits 0-2), has-size flag 0x08,
                  constant-segregation flag 0x10
    size          VLQ u32 byte length of everything after it (if has-size)
    constants     VLQ u32 count + constants (if segregated)
    root          expression bytes; with segregation, constants in the root
                  are ConstantPlaceholder references into the table

Version 1 trees must carry the size. Segregation lets the same script
template be reused with different constants (see template_bytes and
with_constant).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ergotree.data import parse_constant, serialize_constant
from ergotree.errors import DecodeError, TypeCheckError
from ergotree.expr import Constant, Expr
from ergotree.serialization import ConstantStore, expr_to_bytes, parse_expr, serialize_expr
from ergotree.sigma_boolean import ProveDlog, SigmaBoolean
from ergotree.types import SSigmaProp
from primitives.group import GroupElement
from primitives.hashing import blake2b256
from primitives.vlq import SigmaByteReader, SigmaByteWriter

logger = logging.getLogger(__name__)

VERSION_MASK = 0x07
HAS_SIZE_FLAG = 0x08
CONSTANT_SEGREGATION_FLAG = 0x10
MAX_SCRIPT_VERSION = 1


# --- Header ---

@dataclass(frozen=True)
class ErgoTreeHeader:
    version: int = 0
    has_size: bool = False
    constant_segregation: bool = False

    def to_byte(self) -> int:
        b = self.version & VERSION_MASK
        if self.has_size:
            b |= HAS_SIZE_FLAG
        if self.constant_segregation:
            b |= CONSTANT_SEGREGATION_FLAG
        return b

    @classmethod
    def from_byte(cls, b: int) -> ErgoTreeHeader:
        """Decode a header byte.

        Raises:
            DecodeError: On unsupported version, reserved bits, or a version 1
                header without the size flag
        """
        if b & ~(VERSION_MASK | HAS_SIZE_FLAG | CONSTANT_SEGREGATION_FLAG):
            raise DecodeError(f"ErgoTree header has reserved bits set: 0x{b:02x}")
        header = cls(
            version=b & VERSION_MASK,
            has_size=bool(b & HAS_SIZE_FLAG),
            constant_segregation=bool(b & CONSTANT_SEGREGATION_FLAG),
        )
        if header.version > MAX_SCRIPT_VERSION:
            raise DecodeError(f"Unsupported ErgoTree version {header.version}")
        if header.version > 0 and not header.has_size:
            raise DecodeError(f"ErgoTree version {header.version} requires the size flag")
        return header


# --- ErgoTree ---

class ErgoTree:
    """Script container: header, segregated constants and root expression.

    Attributes:
        header: Version and flags
        constants: Segregated constants (empty without segregation)
        root: Root expression; holds ConstantPlaceholder nodes when segregated
    """

    def __init__(self, header: ErgoTreeHeader, constants: tuple[Constant, ...], root: Expr):
        if root.tpe != SSigmaProp:
            raise TypeCheckError(f"ErgoTree root must be SigmaProp, got {root.tpe!r}")
        if constants and not header.constant_segregation:
            raise ValueError("Constants table requires the constant-segregation flag")
        self.header = header
        self.constants = tuple(constants)
        self.root = root

    @classmethod
    def from_expr(cls, expr: Expr, segregate: bool = False, version: int = 0) -> ErgoTree:
        """Build a tree from a proposition.

        Args:
            expr: SigmaProp-typed root expression with inline constants
            segregate: Move all constants into the constants table
            version: Script version (0 or 1); version 1 always carries the size
        """
        if not 0 <= version <= MAX_SCRIPT_VERSION:
            raise ValueError(f"Unsupported ErgoTree version {version}")
        header = ErgoTreeHeader(version=version, has_size=version > 0, constant_segregation=segregate)
        if not segregate:
            return cls(header, (), expr)
        store = ConstantStore()
        root_bytes = expr_to_bytes(expr, store)
        root = parse_expr(SigmaByteReader(root_bytes, store))
        return cls(header, tuple(store.get_all()), root)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErgoTree):
            return NotImplemented
        return (self.header, self.constants, self.root) == (other.header, other.constants, other.root)

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"ErgoTree({self.header!r}, constants={len(self.constants)}, root={self.root!r})"

    # --- Views ---

    def proposition(self) -> Expr:
        """Root expression with every placeholder replaced by its constant."""
        if not self.header.constant_segregation:
            return self.root
        r = SigmaByteReader(self.template_bytes(), ConstantStore(list(self.constants)), substitute_placeholders=True)
        return parse_expr(r)

    def template_bytes(self) -> bytes:
        """Root expression bytes without the header and constants table."""
        return expr_to_bytes(self.root)

    def with_constant(self, index: int, constant: Constant) -> ErgoTree:
        """Copy of the tree with one segregated constant replaced.

        Raises:
            ValueError: If index is out of range
            TypeCheckError: If the new constant's type differs from the old one
        """
        if not 0 <= index < len(self.constants):
            raise ValueError(f"Constant index {index} out of range (tree has {len(self.constants)})")
        old = self.constants[index]
        if old.tpe != constant.tpe:
            raise TypeCheckError(f"Constant {index} has type {old.tpe!r}, got {constant.tpe!r}")
        constants = self.constants[:index] + (constant,) + self.constants[index + 1:]
        return ErgoTree(self.header, constants, self.root)

    @property
    def tree_hash(self) -> bytes:
        return blake2b256(self.to_bytes())

    @property
    def sigma_boolean(self) -> SigmaBoolean | None:
        """The proposition if it is a constant sigma proposition (e.g. P2PK), else None."""
        prop = self.proposition()
        if isinstance(prop, Constant):
            return prop.v
        return None

    # --- Codec ---

    def serialize(self, w: SigmaByteWriter) -> None:
        body = SigmaByteWriter()
        if self.header.constant_segregation:
            body.put_u32(len(self.constants))
            for c in self.constants:
                serialize_constant(c.value, body)
        serialize_expr(self.root, body)
        w.put_u8(self.header.to_byte())
        if self.header.has_size:
            w.put_u32(len(body))
        w.put_bytes(body.to_bytes())

    def to_bytes(self) -> bytes:
        w = SigmaByteWriter()
        self.serialize(w)
        return w.to_bytes()

    @classmethod
    def parse(cls, r: SigmaByteReader) -> ErgoTree:
        """Read a tree from a stream (e.g. inside box bytes).

        Raises:
            DecodeError: On malformed header, constants or root, or a size mismatch
        """
        header = ErgoTreeHeader.from_byte(r.get_u8())
        size = r.get_u32() if header.has_size else None
        start = r.position

        constants: list[Constant] = []
        if header.constant_segregation:
            n = r.get_u32()
            for _ in range(n):
                value = parse_constant(r)
                try:
                    constants.append(Constant.of(value))
                except TypeCheckError as e:
                    raise DecodeError(str(e)) from e

        saved = (r.constant_store, r.substitute_placeholders, r.val_def_types)
        r.constant_store = ConstantStore(constants) if header.constant_segregation else None
        r.substitute_placeholders = False
        r.val_def_types = {}
        try:
            root = parse_expr(r)
        finally:
            r.constant_store, r.substitute_placeholders, r.val_def_types = saved

        if size is not None and r.position - start != size:
            raise DecodeError(f"ErgoTree size mismatch: header says {size}, read {r.position - start}")
        logger.debug(
            "Parsed ErgoTree v%d (segregated=%s, %d constants)",
            header.version, header.constant_segregation, len(constants),
        )
        try:
            return cls(header, tuple(constants), root)
        except TypeCheckError as e:
            raise DecodeError(str(e)) from e

    @classmethod
    def from_bytes(cls, data: bytes) -> ErgoTree:
        """Parse a complete serialized tree.

        Raises:
            DecodeError: On any malformed input or trailing bytes
        """
        r = SigmaByteReader(data)
        try:
            tree = cls.parse(r)
        except RecursionError:
            raise DecodeError("ErgoTree nesting too deep") from None
        if not r.is_empty():
            raise DecodeError(f"{r.remaining()} trailing bytes after ErgoTree")
        return tree


# --- Helpers ---

def sigma_prop_tree(sb: SigmaBoolean, segregate: bool = False) -> ErgoTree:
    """Tree whose root is the constant sigma proposition sb."""
    return ErgoTree.from_expr(Constant(SSigmaProp, sb), segregate=segregate)


def p2pk(pk: GroupElement) -> ErgoTree:
    """Pay-to-public-key script: `00 08 cd <33-byte pk>`."""
    return sigma_prop_tree(ProveDlog(pk))
