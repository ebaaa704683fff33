"""Expression opcodes.

The first byte of every serialized expression node. Bytes 1..112 are reserved
for constants (the byte is the constant's type code); operations start after
LAST_CONSTANT_CODE. The numbering is part of the wire format and never
changes.
"""

from enum import IntEnum

LAST_DATA_TYPE = 111
LAST_CONSTANT_CODE = LAST_DATA_TYPE + 1


def new_op_code(shift: int) -> int:
    return LAST_CONSTANT_CODE + shift


class OpCode(IntEnum):
    """Operation codes, named after the node they introduce."""

    # Variables and constants
    TAGGED_VARIABLE = new_op_code(1)
    VAL_USE = new_op_code(2)
    CONSTANT_PLACEHOLDER = new_op_code(3)
    SUBST_CONSTANTS = new_op_code(4)

    # Conversions
    LONG_TO_BYTE_ARRAY = new_op_code(10)
    BYTE_ARRAY_TO_BIGINT = new_op_code(11)
    BYTE_ARRAY_TO_LONG = new_op_code(12)
    DOWNCAST = new_op_code(13)
    UPCAST = new_op_code(14)

    # Literals
    TRUE = new_op_code(15)
    FALSE = new_op_code(16)
    UNIT = new_op_code(17)
    GROUP_GENERATOR = new_op_code(18)
    COLL = new_op_code(19)
    COLL_OF_BOOL_CONST = new_op_code(21)
    TUPLE = new_op_code(22)
    SELECT_1 = new_op_code(23)
    SELECT_2 = new_op_code(24)
    SELECT_3 = new_op_code(25)
    SELECT_4 = new_op_code(26)
    SELECT_5 = new_op_code(27)
    SELECT_FIELD = new_op_code(28)

    # Relations
    LT = new_op_code(31)
    LE = new_op_code(32)
    GT = new_op_code(33)
    GE = new_op_code(34)
    EQ = new_op_code(35)
    NEQ = new_op_code(36)
    IF = new_op_code(37)
    AND = new_op_code(38)
    OR = new_op_code(39)
    ATLEAST = new_op_code(40)

    # Arithmetic
    MINUS = new_op_code(41)
    PLUS = new_op_code(42)
    XOR = new_op_code(43)
    MULTIPLY = new_op_code(44)
    DIVISION = new_op_code(45)
    MODULO = new_op_code(46)
    EXPONENTIATE = new_op_code(47)
    MULTIPLY_GROUP = new_op_code(48)
    MIN = new_op_code(49)
    MAX = new_op_code(50)

    # Environment
    HEIGHT = new_op_code(51)
    INPUTS = new_op_code(52)
    OUTPUTS = new_op_code(53)
    LAST_BLOCK_UTXO_ROOT_HASH = new_op_code(54)
    SELF = new_op_code(55)
    MINER_PUBKEY = new_op_code(60)

    # Collections
    MAP = new_op_code(61)
    EXISTS = new_op_code(62)
    FOR_ALL = new_op_code(63)
    FOLD = new_op_code(64)
    SIZE_OF = new_op_code(65)
    BY_INDEX = new_op_code(66)
    APPEND = new_op_code(67)
    SLICE = new_op_code(68)
    FILTER = new_op_code(69)
    AVL_TREE = new_op_code(70)
    AVL_TREE_GET = new_op_code(71)
    FLAT_MAP = new_op_code(72)

    # Box
    EXTRACT_AMOUNT = new_op_code(81)
    EXTRACT_SCRIPT_BYTES = new_op_code(82)
    EXTRACT_BYTES = new_op_code(83)
    EXTRACT_BYTES_WITH_NO_REF = new_op_code(84)
    EXTRACT_ID = new_op_code(85)
    EXTRACT_REGISTER_AS = new_op_code(86)
    EXTRACT_CREATION_INFO = new_op_code(87)

    # Cryptography
    CALC_BLAKE2B256 = new_op_code(91)
    CALC_SHA256 = new_op_code(92)
    PROVE_DLOG = new_op_code(93)
    PROVE_DIFFIE_HELLMAN_TUPLE = new_op_code(94)
    SIGMA_PROP_IS_PROVEN = new_op_code(95)
    SIGMA_PROP_BYTES = new_op_code(96)
    BOOL_TO_SIGMA_PROP = new_op_code(97)
    TRIVIAL_PROP_FALSE = new_op_code(98)
    TRIVIAL_PROP_TRUE = new_op_code(99)

    # Deserialization
    DESERIALIZE_CONTEXT = new_op_code(100)
    DESERIALIZE_REGISTER = new_op_code(101)

    # Blocks and functions
    VAL_DEF = new_op_code(102)
    FUN_DEF = new_op_code(103)
    BLOCK_VALUE = new_op_code(104)
    FUNC_VALUE = new_op_code(105)
    FUNC_APPLY = new_op_code(106)
    PROPERTY_CALL = new_op_code(107)
    METHOD_CALL = new_op_code(108)
    GLOBAL = new_op_code(109)
    SOME_VALUE = new_op_code(110)
    NONE_VALUE = new_op_code(111)

    # Options and context variables
    GET_VAR = new_op_code(115)
    OPTION_GET = new_op_code(116)
    OPTION_GET_OR_ELSE = new_op_code(117)
    OPTION_IS_DEFINED = new_op_code(118)
    MOD_Q = new_op_code(119)
    PLUS_MOD_Q = new_op_code(120)
    MINUS_MOD_Q = new_op_code(121)

    # Sigma and bitwise
    SIGMA_AND = new_op_code(122)
    SIGMA_OR = new_op_code(123)
    BIN_OR = new_op_code(124)
    BIN_AND = new_op_code(125)
    DECODE_POINT = new_op_code(126)
    LOGICAL_NOT = new_op_code(127)
    NEGATION = new_op_code(128)
    BIT_INVERSION = new_op_code(129)
    BIT_OR = new_op_code(130)
    BIT_AND = new_op_code(131)
    BIN_XOR = new_op_code(132)
    BIT_XOR = new_op_code(133)
    BIT_SHIFT_RIGHT = new_op_code(134)
    BIT_SHIFT_LEFT = new_op_code(135)
    BIT_SHIFT_RIGHT_ZEROED = new_op_code(136)
    COLL_SHIFT_RIGHT = new_op_code(137)
    COLL_SHIFT_LEFT = new_op_code(138)
    COLL_SHIFT_RIGHT_ZEROED = new_op_code(139)
    COLL_ROTATE_LEFT = new_op_code(140)
    COLL_ROTATE_RIGHT = new_op_code(141)
    CONTEXT = new_op_code(142)
    XOR_OF = new_op_code(143)


def is_constant_code(code: int) -> bool:
    return code <= LAST_CONSTANT_CODE
