"""
CHIP-8 VM - Decoder and disassembler tests

One row per instruction form: the word, the tag it must decode to, and
the disassembly text.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_vm.cpu import decoder as d
from chip8_vm.cpu.decoder import ALL_OPS, UNKNOWN, decode, disassemble, format_instruction


FORMS = [
    (0x00E0, d.CLS,       'CLS'),
    (0x00EE, d.RET,       'RET'),
    (0x1234, d.JP,        'JP    0x234'),
    (0x2ABC, d.CALL,      'CALL  0xABC'),
    (0x3A42, d.SE_BYTE,   'SE    VA, 0x42'),
    (0x4B07, d.SNE_BYTE,  'SNE   VB, 0x07'),
    (0x5120, d.SE_REG,    'SE    V1, V2'),
    (0x6505, d.LD_BYTE,   'LD    V5, 0x05'),
    (0x7FFF, d.ADD_BYTE,  'ADD   VF, 0xFF'),
    (0x8120, d.LD_REG,    'LD    V1, V2'),
    (0x8121, d.OR,        'OR    V1, V2'),
    (0x8122, d.AND,       'AND   V1, V2'),
    (0x8123, d.XOR,       'XOR   V1, V2'),
    (0x8124, d.ADD_REG,   'ADD   V1, V2'),
    (0x8125, d.SUB,       'SUB   V1, V2'),
    (0x8126, d.SHR,       'SHR   V1, V2'),
    (0x8127, d.SUBN,      'SUBN  V1, V2'),
    (0x812E, d.SHL,       'SHL   V1, V2'),
    (0x9340, d.SNE_REG,   'SNE   V3, V4'),
    (0xA300, d.LD_I,      'LD    I, 0x300'),
    (0xB210, d.JP_V0,     'JP    V0, 0x210'),
    (0xC70F, d.RND,       'RND   V7, 0x0F'),
    (0xD125, d.DRW,       'DRW   V1, V2, 5'),
    (0xE59E, d.SKP,       'SKP   V5'),
    (0xE5A1, d.SKNP,      'SKNP  V5'),
    (0xF307, d.LD_VX_DT,  'LD    V3, DT'),
    (0xF30A, d.LD_VX_K,   'LD    V3, K'),
    (0xF315, d.LD_DT_VX,  'LD    DT, V3'),
    (0xF318, d.LD_ST_VX,  'LD    ST, V3'),
    (0xF31E, d.ADD_I,     'ADD   I, V3'),
    (0xF329, d.LD_F,      'LD    F, V3'),
    (0xF333, d.LD_B,      'LD    B, V3'),
    (0xF355, d.LD_MEM_VX, 'LD    [I], V3'),
    (0xF365, d.LD_VX_MEM, 'LD    V3, [I]'),
]


class TestDecode:
    def test_table_covers_every_form(self):
        assert len(ALL_OPS) == len(FORMS) == 34
        assert {op for _, op, _ in FORMS} == set(ALL_OPS)

    @pytest.mark.parametrize("word,op,text", FORMS)
    def test_form(self, word, op, text):
        ins = decode(word)
        assert ins.op == op
        assert ins.word == word
        assert format_instruction(ins) == text

    def test_fields(self):
        ins = decode(0xD3A7)
        assert (ins.x, ins.y, ins.n, ins.kk, ins.nnn) == (0x3, 0xA, 0x7, 0xA7, 0x3A7)

    @pytest.mark.parametrize("word", [
        0x0000, 0x0123, 0x00E1, 0x5121, 0x5123, 0x8008, 0x800F,
        0x9001, 0xE09F, 0xE0FF, 0xF000, 0xF0FF, 0xFFFF,
    ])
    def test_unknown(self, word):
        ins = decode(word)
        assert ins.op == UNKNOWN
        assert format_instruction(ins) == f'DW    0x{word:04X}'

    def test_masks_input(self):
        assert decode(0x100E0).op == d.CLS


class TestDisassemble:
    def test_words(self):
        lines = list(disassemble(bytes([0x60, 0x05, 0x12, 0x00])))
        assert lines == [
            (0x200, 0x6005, 'LD    V0, 0x05'),
            (0x202, 0x1200, 'JP    0x200'),
        ]

    def test_trailing_odd_byte(self):
        lines = list(disassemble(bytes([0x00, 0xE0, 0xAB]), 0x300))
        assert lines[-1] == (0x302, 0xAB, 'DB    0xAB')

    def test_empty(self):
        assert list(disassemble(b'')) == []
