"""
Prologue detectors for AMD64 and ARM64.

Both detectors test a fixed table of instruction patterns at every decode
step with one instruction of look-behind. Patterns that only make sense at
a function entry are gated on a boundary test: no previous instruction
(start of stream or right after a decode failure) or a previous return.
"""

from typing import List, Optional

from capstone import arm64_const as arm64
from capstone import x86_const as x86

from ..arch import Arch
from ..decoder import DecodedInstruction
from ..models import Prologue, PrologueKind
from .base_detector import BaseDetector


def _signed64(value: int) -> int:
    value &= 0xFFFFFFFFFFFFFFFF
    return value - (1 << 64) if value & (1 << 63) else value


class PrologueDetector(BaseDetector[Prologue]):
    """Common helpers for the per-architecture prologue detectors."""

    RET_ID = None

    def _is_ret(self, insn: Optional[DecodedInstruction]) -> bool:
        return insn is not None and insn.id == self.RET_ID

    def _at_boundary(self, previous: Optional[DecodedInstruction]) -> bool:
        return previous is None or self._is_ret(previous)

    @staticmethod
    def _emit(results: List[Prologue], address: int, kind: PrologueKind, text: str) -> None:
        results.append(Prologue(address=address & 0xFFFFFFFFFFFFFFFF, kind=kind, instructions=text))


class AMD64PrologueDetector(PrologueDetector):
    """
    x86-64 patterns:

    - classic: ``push rbp; mov rbp, rsp``
    - no-frame-pointer: ``sub rsp, imm`` after nothing, ``ret`` or ``push``
    - push-only: push of a callee-saved register at a boundary
    - lea-based: ``lea rsp, [rsp - disp]`` after nothing, ``ret`` or ``push``
    """

    arch = Arch.AMD64
    RET_ID = x86.X86_INS_RET

    def visit(self, insn, previous, results):
        ops = insn.operands

        if previous is not None and self._is_push_reg(previous, x86.X86_REG_RBP) \
                and self._is_mov_rbp_rsp(insn):
            self._emit(results, previous.address, PrologueKind.CLASSIC,
                       f"{previous.text}; {insn.text}")

        if insn.id == x86.X86_INS_SUB and self._is_reg(ops, 0, x86.X86_REG_RSP) \
                and len(ops) > 1 and ops[1].type == x86.X86_OP_IMM and _signed64(ops[1].imm) > 0:
            if self._allocation_boundary(previous):
                self._emit(results, insn.address, PrologueKind.NO_FRAME_POINTER,
                           f"sub rsp, {_signed64(ops[1].imm):#x}")

        if insn.id == x86.X86_INS_PUSH and ops and ops[0].type == x86.X86_OP_REG:
            register = insn.insn.reg_name(ops[0].reg)
            if self.arch_info.is_callee_saved(register) and self._at_boundary(previous):
                self._emit(results, insn.address, PrologueKind.PUSH_ONLY, f"push {register}")

        if insn.id == x86.X86_INS_LEA and self._is_reg(ops, 0, x86.X86_REG_RSP) \
                and len(ops) > 1 and ops[1].type == x86.X86_OP_MEM \
                and ops[1].mem.base == x86.X86_REG_RSP and ops[1].mem.disp < 0:
            if self._allocation_boundary(previous):
                self._emit(results, insn.address, PrologueKind.LEA_BASED, insn.text)

    def _allocation_boundary(self, previous) -> bool:
        # allocation may follow saves of callee-saved registers
        return self._at_boundary(previous) or previous.id == x86.X86_INS_PUSH

    @staticmethod
    def _is_reg(ops, index: int, reg: int) -> bool:
        return len(ops) > index and ops[index].type == x86.X86_OP_REG and ops[index].reg == reg

    def _is_push_reg(self, insn, reg: int) -> bool:
        return insn.id == x86.X86_INS_PUSH and self._is_reg(insn.operands, 0, reg)

    def _is_mov_rbp_rsp(self, insn) -> bool:
        ops = insn.operands
        return insn.id == x86.X86_INS_MOV and len(ops) == 2 \
            and self._is_reg(ops, 0, x86.X86_REG_RBP) and self._is_reg(ops, 1, x86.X86_REG_RSP)


class ARM64PrologueDetector(PrologueDetector):
    """
    A64 patterns:

    - stp-frame-pair: ``stp x29, x30, [sp, #-N]!; mov x29, sp``
    - stp-only: the same store followed by anything else
    - str-lr-preindex: ``str x30, [sp, #-N]!`` at a boundary
    - sub-sp: ``sub sp, sp, <op>`` at a boundary
    """

    arch = Arch.ARM64
    RET_ID = arm64.ARM64_INS_RET

    def visit(self, insn, previous, results):
        ops = insn.operands

        # the frame-pair decision is taken once the following instruction decodes
        if previous is not None and self._is_stp_frame_record(previous):
            if self._is_mov_x29_sp(insn):
                self._emit(results, previous.address, PrologueKind.STP_FRAME_PAIR,
                           f"{previous.text}; {insn.text}")
            else:
                self._emit(results, previous.address, PrologueKind.STP_ONLY, previous.text)

        if insn.id == arm64.ARM64_INS_STR and len(ops) >= 2 \
                and self._is_reg(ops, 0, arm64.ARM64_REG_X30) \
                and self._is_pre_decrement(insn, ops[1]) and self._at_boundary(previous):
            self._emit(results, insn.address, PrologueKind.STR_LR_PREINDEX, insn.text)

        if insn.id == arm64.ARM64_INS_SUB and self._is_reg(ops, 0, arm64.ARM64_REG_SP) \
                and self._is_reg(ops, 1, arm64.ARM64_REG_SP) and self._at_boundary(previous):
            self._emit(results, insn.address, PrologueKind.SUB_SP, insn.text)

    @staticmethod
    def _is_reg(ops, index: int, reg: int) -> bool:
        return len(ops) > index and ops[index].type == arm64.ARM64_OP_REG and ops[index].reg == reg

    @staticmethod
    def _is_pre_decrement(insn, op) -> bool:
        # pre-index writeback renders as "[sp, #-0x10]!"; post-index carries a separate imm
        return op.type == arm64.ARM64_OP_MEM and op.mem.base == arm64.ARM64_REG_SP \
            and op.mem.disp < 0 and insn.op_str.rstrip().endswith('!')

    def _is_stp_frame_record(self, insn) -> bool:
        ops = insn.operands
        return insn.id == arm64.ARM64_INS_STP and len(ops) >= 3 \
            and self._is_reg(ops, 0, arm64.ARM64_REG_X29) \
            and self._is_reg(ops, 1, arm64.ARM64_REG_X30) \
            and self._is_pre_decrement(insn, ops[2])

    def _is_mov_x29_sp(self, insn) -> bool:
        ops = insn.operands
        if not (self._is_reg(ops, 0, arm64.ARM64_REG_X29) and self._is_reg(ops, 1, arm64.ARM64_REG_SP)):
            return False
        if insn.id == arm64.ARM64_INS_MOV and len(ops) == 2:
            return True
        # "mov x29, sp" is an alias of "add x29, sp, #0"
        return insn.id == arm64.ARM64_INS_ADD and len(ops) == 3 \
            and ops[2].type == arm64.ARM64_OP_IMM and ops[2].imm == 0
