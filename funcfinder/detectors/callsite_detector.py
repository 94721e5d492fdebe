"""
Call/jump site detectors for AMD64 and ARM64.

Every call and jump becomes one CallSiteEdge. Direct branches carry an
immediate that capstone has already turned into an absolute address
(``address + size + displacement`` on x86-64, ``address + imm * 4`` on
A64); register and memory operands leave the target unresolved.
"""

from typing import Iterable, Optional

from capstone import arm64_const as arm64
from capstone import x86_const as x86

from ..arch import Arch
from ..config import DetectorConfig
from ..decoder import DecodedInstruction
from ..models import AddressingMode, CallSiteEdge, Confidence, EdgeKind
from .base_detector import BaseDetector


def _ids(module, names: Iterable[str]) -> frozenset:
    # not every capstone release defines every alias
    return frozenset(getattr(module, name) for name in names if hasattr(module, name))


class CallSiteDetector(BaseDetector[CallSiteEdge]):
    """Shared classification; subclasses supply the instruction tables."""

    CALLS = frozenset()
    JUMPS = frozenset()
    CONDITIONAL_JUMPS = frozenset()
    OP_IMM = None

    def visit(self, insn, previous, results):
        if insn.id in self.CALLS:
            kind, conditional = EdgeKind.CALL, False
        elif self._is_conditional(insn):
            kind, conditional = EdgeKind.JUMP, True
        elif insn.id in self.JUMPS:
            kind, conditional = EdgeKind.JUMP, False
        else:
            return

        mode, target = self._resolve(insn)
        results.append(CallSiteEdge(
            source_address=insn.address,
            target_address=target,
            kind=kind,
            addressing_mode=mode,
            confidence=self._confidence(kind, conditional, target),
            instruction=insn.text,
            conditional=conditional,
        ))

    def _is_conditional(self, insn: DecodedInstruction) -> bool:
        return insn.id in self.CONDITIONAL_JUMPS

    def _is_absolute(self, insn: DecodedInstruction) -> bool:
        return False

    def _resolve(self, insn: DecodedInstruction):
        immediates = [op.imm for op in insn.operands if op.type == self.OP_IMM]
        if not immediates:
            return AddressingMode.REGISTER_INDIRECT, None
        # the branch target is the last immediate (tbz/tbnz carry a bit number first)
        target = immediates[-1] & 0xFFFFFFFFFFFFFFFF
        if self._is_absolute(insn):
            return AddressingMode.ABSOLUTE, target
        return AddressingMode.PC_RELATIVE, target

    @staticmethod
    def _confidence(kind: EdgeKind, conditional: bool, target: Optional[int]) -> Confidence:
        if target is None:
            return Confidence.NONE
        if kind is EdgeKind.CALL:
            return Confidence.parse(DetectorConfig.CALL_CONFIDENCE)
        if conditional:
            return Confidence.parse(DetectorConfig.CONDITIONAL_JUMP_CONFIDENCE)
        return Confidence.parse(DetectorConfig.JUMP_CONFIDENCE)


class AMD64CallSiteDetector(CallSiteDetector):
    arch = Arch.AMD64
    OP_IMM = x86.X86_OP_IMM

    CALLS = _ids(x86, ['X86_INS_CALL', 'X86_INS_LCALL'])
    JUMPS = _ids(x86, ['X86_INS_JMP', 'X86_INS_LJMP'])
    CONDITIONAL_JUMPS = _ids(x86, [
        'X86_INS_JA', 'X86_INS_JAE', 'X86_INS_JB', 'X86_INS_JBE',
        'X86_INS_JE', 'X86_INS_JNE', 'X86_INS_JG', 'X86_INS_JGE',
        'X86_INS_JL', 'X86_INS_JLE', 'X86_INS_JO', 'X86_INS_JNO',
        'X86_INS_JP', 'X86_INS_JNP', 'X86_INS_JS', 'X86_INS_JNS',
        'X86_INS_JCXZ', 'X86_INS_JECXZ', 'X86_INS_JRCXZ',
        'X86_INS_LOOP', 'X86_INS_LOOPE', 'X86_INS_LOOPNE',
    ])
    FAR_BRANCHES = _ids(x86, ['X86_INS_LCALL', 'X86_INS_LJMP'])

    def _is_absolute(self, insn):
        return insn.id in self.FAR_BRANCHES


class ARM64CallSiteDetector(CallSiteDetector):
    arch = Arch.ARM64
    OP_IMM = arm64.ARM64_OP_IMM

    CALLS = _ids(arm64, [
        'ARM64_INS_BL', 'ARM64_INS_BLR',
        'ARM64_INS_BLRAA', 'ARM64_INS_BLRAAZ', 'ARM64_INS_BLRAB', 'ARM64_INS_BLRABZ',
    ])
    JUMPS = _ids(arm64, [
        'ARM64_INS_B', 'ARM64_INS_BR',
        'ARM64_INS_BRAA', 'ARM64_INS_BRAAZ', 'ARM64_INS_BRAB', 'ARM64_INS_BRABZ',
    ])
    CONDITIONAL_JUMPS = _ids(arm64, [
        'ARM64_INS_CBZ', 'ARM64_INS_CBNZ', 'ARM64_INS_TBZ', 'ARM64_INS_TBNZ',
    ])

    def _is_conditional(self, insn):
        # b.cond shares the B opcode id; the condition shows in the mnemonic
        if insn.id == arm64.ARM64_INS_B and insn.mnemonic.startswith('b.'):
            return True
        return insn.id in self.CONDITIONAL_JUMPS
