"""Method descriptors of the object types.

PropertyCall and MethodCall nodes reference a method by (type code, method
id). The descriptors here give each method its name and a signature whose
type variables are resolved against the receiver and argument types when a
node is built or parsed. The evaluation functions live in
interpreter.methods and are keyed by the same (type code, method id) pair.
"""

from __future__ import annotations

from dataclasses import dataclass

from ergotree.errors import TypeCheckError
from ergotree.types import (
    COLLECTION_CODE,
    OPTION_CODE,
    SAvlTree,
    SBigInt,
    SBoolean,
    SBox,
    SByte,
    SByteArray,
    SColl,
    SContext,
    SFunc,
    SGlobal,
    SGroupElement,
    SHeader,
    SInt,
    SLong,
    SOption,
    SPreHeader,
    STuple,
    SType,
    STypeVar,
)

T = STypeVar("T")
B = STypeVar("B")


@dataclass(frozen=True)
class SMethod:
    """Method signature.

    Attributes:
        type_code: Receiver type code (e.g. 99 for Box, 12 for Coll)
        method_id: Method id within the receiver type
        name: Method name as written in scripts
        obj_type: Receiver type pattern (may contain type variables)
        arg_types: Explicit argument type patterns
        result: Result type pattern
    """

    type_code: int
    method_id: int
    name: str
    obj_type: SType
    arg_types: tuple[SType, ...]
    result: SType

    @property
    def is_property(self) -> bool:
        return not self.arg_types

    def result_type(self, obj_tpe: SType, arg_tpes: tuple[SType, ...] = ()) -> SType:
        """Result type specialized for concrete receiver and argument types.

        Raises:
            TypeCheckError: If the receiver or arguments do not fit the signature
        """
        if len(arg_tpes) != len(self.arg_types):
            raise TypeCheckError(
                f"{self.name}: expected {len(self.arg_types)} arguments, got {len(arg_tpes)}"
            )
        subst: dict[str, SType] = {}
        if not unify(self.obj_type, obj_tpe, subst):
            raise TypeCheckError(f"{self.name}: receiver {obj_tpe!r} does not match {self.obj_type!r}")
        for pattern, actual in zip(self.arg_types, arg_tpes):
            if not unify(pattern, actual, subst):
                raise TypeCheckError(f"{self.name}: argument {actual!r} does not match {pattern!r}")
        return substitute(self.result, subst)


# --- Type Unification ---

def unify(pattern: SType, actual: SType, subst: dict[str, SType]) -> bool:
    """Match actual against pattern, binding type variables in subst."""
    if isinstance(pattern, STypeVar):
        bound = subst.get(pattern.name)
        if bound is None:
            subst[pattern.name] = actual
            return True
        return bound == actual
    if isinstance(pattern, SColl):
        return isinstance(actual, SColl) and unify(pattern.elem, actual.elem, subst)
    if isinstance(pattern, SOption):
        return isinstance(actual, SOption) and unify(pattern.elem, actual.elem, subst)
    if isinstance(pattern, STuple):
        return (
            isinstance(actual, STuple)
            and len(pattern.items) == len(actual.items)
            and all(unify(p, a, subst) for p, a in zip(pattern.items, actual.items))
        )
    if isinstance(pattern, SFunc):
        return (
            isinstance(actual, SFunc)
            and len(pattern.domain) == len(actual.domain)
            and all(unify(p, a, subst) for p, a in zip(pattern.domain, actual.domain))
            and unify(pattern.range, actual.range, subst)
        )
    return pattern == actual


def substitute(tpe: SType, subst: dict[str, SType]) -> SType:
    if isinstance(tpe, STypeVar):
        return subst.get(tpe.name, tpe)
    if isinstance(tpe, SColl):
        return SColl(substitute(tpe.elem, subst))
    if isinstance(tpe, SOption):
        return SOption(substitute(tpe.elem, subst))
    if isinstance(tpe, STuple):
        return STuple(tuple(substitute(t, subst) for t in tpe.items))
    if isinstance(tpe, SFunc):
        return SFunc(tuple(substitute(t, subst) for t in tpe.domain), substitute(tpe.range, subst))
    return tpe


# --- Method Table ---

def _m(obj: SType, type_code: int, method_id: int, name: str, result: SType, *args: SType) -> SMethod:
    return SMethod(type_code, method_id, name, obj, tuple(args), result)


_COLL = SColl(T)
_OPTION = SOption(T)

_ALL_METHODS = [
    # Coll[T]
    _m(_COLL, COLLECTION_CODE, 1, "size", SInt),
    _m(_COLL, COLLECTION_CODE, 2, "getOrElse", T, SInt, T),
    _m(_COLL, COLLECTION_CODE, 14, "indices", SColl(SInt)),
    _m(_COLL, COLLECTION_CODE, 15, "flatMap", SColl(B), SFunc((T,), SColl(B))),
    _m(_COLL, COLLECTION_CODE, 26, "indexOf", SInt, T, SInt),
    _m(_COLL, COLLECTION_CODE, 29, "zip", SColl(STuple((T, B))), SColl(B)),
    # Option[T]
    _m(_OPTION, OPTION_CODE, 7, "map", SOption(B), SFunc((T,), B)),
    _m(_OPTION, OPTION_CODE, 8, "filter", SOption(T), SFunc((T,), SBoolean)),
    # GroupElement
    _m(SGroupElement, SGroupElement.code, 2, "getEncoded", SByteArray),
    _m(SGroupElement, SGroupElement.code, 3, "exp", SGroupElement, SBigInt),
    _m(SGroupElement, SGroupElement.code, 4, "multiply", SGroupElement, SGroupElement),
    _m(SGroupElement, SGroupElement.code, 5, "negate", SGroupElement),
    # Box
    _m(SBox, SBox.code, 1, "value", SLong),
    _m(SBox, SBox.code, 2, "propositionBytes", SByteArray),
    _m(SBox, SBox.code, 3, "bytes", SByteArray),
    _m(SBox, SBox.code, 4, "bytesWithoutRef", SByteArray),
    _m(SBox, SBox.code, 5, "id", SByteArray),
    _m(SBox, SBox.code, 6, "creationInfo", STuple((SInt, SByteArray))),
    _m(SBox, SBox.code, 8, "tokens", SColl(STuple((SByteArray, SLong)))),
    # AvlTree
    _m(SAvlTree, SAvlTree.code, 1, "digest", SByteArray),
    _m(SAvlTree, SAvlTree.code, 2, "enabledOperations", SByte),
    _m(SAvlTree, SAvlTree.code, 3, "keyLength", SInt),
    _m(SAvlTree, SAvlTree.code, 4, "valueLengthOpt", SOption(SInt)),
    _m(SAvlTree, SAvlTree.code, 5, "isInsertAllowed", SBoolean),
    _m(SAvlTree, SAvlTree.code, 6, "isUpdateAllowed", SBoolean),
    _m(SAvlTree, SAvlTree.code, 7, "isRemoveAllowed", SBoolean),
    _m(SAvlTree, SAvlTree.code, 8, "updateOperations", SAvlTree, SByte),
    _m(SAvlTree, SAvlTree.code, 15, "updateDigest", SAvlTree, SByteArray),
    # Context
    _m(SContext, SContext.code, 1, "dataInputs", SColl(SBox)),
    _m(SContext, SContext.code, 2, "headers", SColl(SHeader)),
    _m(SContext, SContext.code, 3, "preHeader", SPreHeader),
    _m(SContext, SContext.code, 4, "INPUTS", SColl(SBox)),
    _m(SContext, SContext.code, 5, "OUTPUTS", SColl(SBox)),
    _m(SContext, SContext.code, 6, "HEIGHT", SInt),
    _m(SContext, SContext.code, 7, "SELF", SBox),
    _m(SContext, SContext.code, 8, "selfBoxIndex", SInt),
    _m(SContext, SContext.code, 9, "LastBlockUtxoRootHash", SAvlTree),
    _m(SContext, SContext.code, 10, "minerPubKey", SByteArray),
    # Header
    _m(SHeader, SHeader.code, 1, "id", SByteArray),
    _m(SHeader, SHeader.code, 2, "version", SByte),
    _m(SHeader, SHeader.code, 3, "parentId", SByteArray),
    _m(SHeader, SHeader.code, 4, "ADProofsRoot", SByteArray),
    _m(SHeader, SHeader.code, 5, "stateRoot", SAvlTree),
    _m(SHeader, SHeader.code, 6, "transactionsRoot", SByteArray),
    _m(SHeader, SHeader.code, 7, "timestamp", SLong),
    _m(SHeader, SHeader.code, 8, "nBits", SLong),
    _m(SHeader, SHeader.code, 9, "height", SInt),
    _m(SHeader, SHeader.code, 10, "extensionRoot", SByteArray),
    _m(SHeader, SHeader.code, 11, "minerPk", SGroupElement),
    _m(SHeader, SHeader.code, 12, "powOnetimePk", SGroupElement),
    _m(SHeader, SHeader.code, 13, "powNonce", SByteArray),
    _m(SHeader, SHeader.code, 14, "powDistance", SBigInt),
    _m(SHeader, SHeader.code, 15, "votes", SByteArray),
    # PreHeader
    _m(SPreHeader, SPreHeader.code, 1, "version", SByte),
    _m(SPreHeader, SPreHeader.code, 2, "parentId", SByteArray),
    _m(SPreHeader, SPreHeader.code, 3, "timestamp", SLong),
    _m(SPreHeader, SPreHeader.code, 4, "nBits", SLong),
    _m(SPreHeader, SPreHeader.code, 5, "height", SInt),
    _m(SPreHeader, SPreHeader.code, 6, "minerPk", SGroupElement),
    _m(SPreHeader, SPreHeader.code, 7, "votes", SByteArray),
    # Global
    _m(SGlobal, SGlobal.code, 1, "groupGenerator", SGroupElement),
    _m(SGlobal, SGlobal.code, 2, "xor", SByteArray, SByteArray, SByteArray),
]

METHODS: dict[tuple[int, int], SMethod] = {(m.type_code, m.method_id): m for m in _ALL_METHODS}


def get_method(type_code: int, method_id: int) -> SMethod:
    """Look up a method descriptor.

    Raises:
        KeyError: If the pair is not registered
    """
    try:
        return METHODS[(type_code, method_id)]
    except KeyError:
        raise KeyError(f"No method {method_id} on type code {type_code}") from None


def find_method(obj_tpe: SType, name: str) -> SMethod:
    """Descriptor of a method by receiver type and name (for building trees in code)."""
    for m in _ALL_METHODS:
        if m.name == name and unify(m.obj_type, obj_tpe, {}):
            return m
    raise KeyError(f"No method {name!r} on {obj_tpe!r}")
