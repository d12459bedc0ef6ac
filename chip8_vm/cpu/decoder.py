"""
CHIP-8 VM - Opcode Decoder

Every instruction is one big-endian 16-bit word. Field names follow the
usual CHIP-8 notation:

  nnn  low 12 bits (address)
  x    bits 11-8 (register)
  y    bits 7-4  (register)
  kk   low byte  (immediate)
  n    low nibble

Decoding looks at the high nibble first, then tries the masks of that
family in order. A word that matches nothing decodes to UNKNOWN; the
decoder never raises, the executor decides what UNKNOWN means.
"""

from typing import Dict, Iterator, List, NamedTuple, Tuple

# ──────────────────────────────────────────────
# Instruction tags
# ──────────────────────────────────────────────

CLS       = 'CLS'         # 00E0
RET       = 'RET'         # 00EE
JP        = 'JP'          # 1nnn
CALL      = 'CALL'        # 2nnn
SE_BYTE   = 'SE_BYTE'     # 3xkk
SNE_BYTE  = 'SNE_BYTE'    # 4xkk
SE_REG    = 'SE_REG'      # 5xy0
LD_BYTE   = 'LD_BYTE'     # 6xkk
ADD_BYTE  = 'ADD_BYTE'    # 7xkk
LD_REG    = 'LD_REG'      # 8xy0
OR        = 'OR'          # 8xy1
AND       = 'AND'         # 8xy2
XOR       = 'XOR'         # 8xy3
ADD_REG   = 'ADD_REG'     # 8xy4
SUB       = 'SUB'         # 8xy5
SHR       = 'SHR'         # 8xy6
SUBN      = 'SUBN'        # 8xy7
SHL       = 'SHL'         # 8xyE
SNE_REG   = 'SNE_REG'     # 9xy0
LD_I      = 'LD_I'        # Annn
JP_V0     = 'JP_V0'       # Bnnn
RND       = 'RND'         # Cxkk
DRW       = 'DRW'         # Dxyn
SKP       = 'SKP'         # Ex9E
SKNP      = 'SKNP'        # ExA1
LD_VX_DT  = 'LD_VX_DT'    # Fx07
LD_VX_K   = 'LD_VX_K'     # Fx0A
LD_DT_VX  = 'LD_DT_VX'    # Fx15
LD_ST_VX  = 'LD_ST_VX'    # Fx18
ADD_I     = 'ADD_I'       # Fx1E
LD_F      = 'LD_F'        # Fx29
LD_B      = 'LD_B'        # Fx33
LD_MEM_VX = 'LD_MEM_VX'   # Fx55
LD_VX_MEM = 'LD_VX_MEM'   # Fx65
UNKNOWN   = 'UNKNOWN'


class Instruction(NamedTuple):
    op: str
    word: int

    @property
    def x(self) -> int:
        return (self.word >> 8) & 0xF

    @property
    def y(self) -> int:
        return (self.word >> 4) & 0xF

    @property
    def n(self) -> int:
        return self.word & 0xF

    @property
    def kk(self) -> int:
        return self.word & 0xFF

    @property
    def nnn(self) -> int:
        return self.word & 0xFFF


# ──────────────────────────────────────────────
# Family table: high nibble -> [(mask, pattern, tag)]
# ──────────────────────────────────────────────

FAMILIES: Dict[int, List[Tuple[int, int, str]]] = {
    0x0: [(0xFFFF, 0x00E0, CLS),
          (0xFFFF, 0x00EE, RET)],
    0x1: [(0xF000, 0x1000, JP)],
    0x2: [(0xF000, 0x2000, CALL)],
    0x3: [(0xF000, 0x3000, SE_BYTE)],
    0x4: [(0xF000, 0x4000, SNE_BYTE)],
    0x5: [(0xF00F, 0x5000, SE_REG)],
    0x6: [(0xF000, 0x6000, LD_BYTE)],
    0x7: [(0xF000, 0x7000, ADD_BYTE)],
    0x8: [(0xF00F, 0x8000, LD_REG),
          (0xF00F, 0x8001, OR),
          (0xF00F, 0x8002, AND),
          (0xF00F, 0x8003, XOR),
          (0xF00F, 0x8004, ADD_REG),
          (0xF00F, 0x8005, SUB),
          (0xF00F, 0x8006, SHR),
          (0xF00F, 0x8007, SUBN),
          (0xF00F, 0x800E, SHL)],
    0x9: [(0xF00F, 0x9000, SNE_REG)],
    0xA: [(0xF000, 0xA000, LD_I)],
    0xB: [(0xF000, 0xB000, JP_V0)],
    0xC: [(0xF000, 0xC000, RND)],
    0xD: [(0xF000, 0xD000, DRW)],
    0xE: [(0xF0FF, 0xE09E, SKP),
          (0xF0FF, 0xE0A1, SKNP)],
    0xF: [(0xF0FF, 0xF007, LD_VX_DT),
          (0xF0FF, 0xF00A, LD_VX_K),
          (0xF0FF, 0xF015, LD_DT_VX),
          (0xF0FF, 0xF018, LD_ST_VX),
          (0xF0FF, 0xF01E, ADD_I),
          (0xF0FF, 0xF029, LD_F),
          (0xF0FF, 0xF033, LD_B),
          (0xF0FF, 0xF055, LD_MEM_VX),
          (0xF0FF, 0xF065, LD_VX_MEM)],
}

ALL_OPS = tuple(tag for family in FAMILIES.values() for _, _, tag in family)


def decode(word: int) -> Instruction:
    """Decode one instruction word into a tagged Instruction."""
    word &= 0xFFFF
    for mask, pattern, tag in FAMILIES[word >> 12]:
        if word & mask == pattern:
            return Instruction(tag, word)
    return Instruction(UNKNOWN, word)


# ──────────────────────────────────────────────
# Disassembly
# ──────────────────────────────────────────────

_FORMATS = {
    CLS:       'CLS',
    RET:       'RET',
    JP:        'JP    0x{nnn:03X}',
    CALL:      'CALL  0x{nnn:03X}',
    SE_BYTE:   'SE    V{x:X}, 0x{kk:02X}',
    SNE_BYTE:  'SNE   V{x:X}, 0x{kk:02X}',
    SE_REG:    'SE    V{x:X}, V{y:X}',
    LD_BYTE:   'LD    V{x:X}, 0x{kk:02X}',
    ADD_BYTE:  'ADD   V{x:X}, 0x{kk:02X}',
    LD_REG:    'LD    V{x:X}, V{y:X}',
    OR:        'OR    V{x:X}, V{y:X}',
    AND:       'AND   V{x:X}, V{y:X}',
    XOR:       'XOR   V{x:X}, V{y:X}',
    ADD_REG:   'ADD   V{x:X}, V{y:X}',
    SUB:       'SUB   V{x:X}, V{y:X}',
    SHR:       'SHR   V{x:X}, V{y:X}',
    SUBN:      'SUBN  V{x:X}, V{y:X}',
    SHL:       'SHL   V{x:X}, V{y:X}',
    SNE_REG:   'SNE   V{x:X}, V{y:X}',
    LD_I:      'LD    I, 0x{nnn:03X}',
    JP_V0:     'JP    V0, 0x{nnn:03X}',
    RND:       'RND   V{x:X}, 0x{kk:02X}',
    DRW:       'DRW   V{x:X}, V{y:X}, {n}',
    SKP:       'SKP   V{x:X}',
    SKNP:      'SKNP  V{x:X}',
    LD_VX_DT:  'LD    V{x:X}, DT',
    LD_VX_K:   'LD    V{x:X}, K',
    LD_DT_VX:  'LD    DT, V{x:X}',
    LD_ST_VX:  'LD    ST, V{x:X}',
    ADD_I:     'ADD   I, V{x:X}',
    LD_F:      'LD    F, V{x:X}',
    LD_B:      'LD    B, V{x:X}',
    LD_MEM_VX: 'LD    [I], V{x:X}',
    LD_VX_MEM: 'LD    V{x:X}, [I]',
    UNKNOWN:   'DW    0x{word:04X}',
}


def format_instruction(ins: Instruction) -> str:
    return _FORMATS[ins.op].format(nnn=ins.nnn, x=ins.x, y=ins.y, kk=ins.kk,
                                   n=ins.n, word=ins.word)


def disassemble(data: bytes, base_addr: int = 0x200) -> Iterator[Tuple[int, int, str]]:
    """Yield (address, word, text) for every 2-byte word in data.

    A trailing odd byte is shown as a DB line.
    """
    for offset in range(0, len(data) - 1, 2):
        word = (data[offset] << 8) | data[offset + 1]
        yield base_addr + offset, word, format_instruction(decode(word))
    if len(data) % 2:
        yield base_addr + len(data) - 1, data[-1], f'DB    0x{data[-1]:02X}'
