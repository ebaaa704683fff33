"""ErgoTree - types, values, sigma propositions, expression tree and codecs."""

from ergotree.chain import ContextExtension, ErgoBox, Header, PreHeader, Token
from ergotree.data import parse_constant, parse_data, serialize_constant, serialize_data
from ergotree.ergo_tree import ErgoTree, ErgoTreeHeader, p2pk, sigma_prop_tree
from ergotree.errors import DecodeError, SerializationError, TypeCheckError
from ergotree.expr import Constant, ConstantPlaceholder, Expr
from ergotree.methods import SMethod, find_method, get_method
from ergotree.opcodes import OpCode
from ergotree.serialization import ConstantStore, expr_from_bytes, expr_to_bytes
from ergotree.sigma_boolean import (
    Cand,
    ConjectureType,
    Cor,
    Cthreshold,
    ProveDhTuple,
    ProveDlog,
    SigmaBoolean,
    TrivialProp,
)
from ergotree.types import SType, parse_type, serialize_type
from ergotree.values import AvlTreeData, Lambda, Value

__all__ = [
    # Types and values
    "SType",
    "Value",
    "Lambda",
    "AvlTreeData",
    # Sigma propositions
    "SigmaBoolean",
    "TrivialProp",
    "ProveDlog",
    "ProveDhTuple",
    "Cand",
    "Cor",
    "Cthreshold",
    "ConjectureType",
    # Expression tree
    "Expr",
    "Constant",
    "ConstantPlaceholder",
    "OpCode",
    "SMethod",
    "get_method",
    "find_method",
    # Codecs
    "serialize_type",
    "parse_type",
    "serialize_data",
    "parse_data",
    "serialize_constant",
    "parse_constant",
    "ConstantStore",
    "expr_to_bytes",
    "expr_from_bytes",
    "ErgoTree",
    "ErgoTreeHeader",
    "p2pk",
    "sigma_prop_tree",
    # Chain data
    "ErgoBox",
    "Token",
    "Header",
    "PreHeader",
    "ContextExtension",
    # Errors
    "DecodeError",
    "SerializationError",
    "TypeCheckError",
]
