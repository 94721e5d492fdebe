"""
Configuration file for function boundary detection parameters.
"""


class DetectorConfig:
    """Tunable constants shared by the decoders, detectors and merger."""

    # Decoder limits
    AMD64_MAX_INSN_LEN = 15    # Longest legal x86-64 encoding
    ARM64_INSN_LEN = 4         # Fixed A64 instruction width

    # CET markers (endbr64, endbr32) not understood by every decoder; skipped
    # as 4-byte units without breaking pattern continuity
    CET_MARKERS = (
        b'\xf3\x0f\x1e\xfa',
        b'\xf3\x0f\x1e\xfb',
    )

    # Callee-saved registers per System V AMD64 ABI
    AMD64_CALLEE_SAVED = {'rbx', 'rbp', 'r12', 'r13', 'r14', 'r15'}

    # Prologue kinds trusted enough to rate a prologue-only candidate "high"
    HIGH_TRUST_PROLOGUES = {'classic', 'stp-frame-pair'}

    # Ranking used when more than one prologue kind fires at one address
    PROLOGUE_TRUST = {
        'classic': 3,
        'stp-frame-pair': 3,
        'str-lr-preindex': 2,
        'stp-only': 2,
        'no-frame-pointer': 1,
        'lea-based': 1,
        'sub-sp': 1,
        'push-only': 0,
    }

    # Confidence per branch class when the target resolves statically
    CALL_CONFIDENCE = 'high'
    JUMP_CONFIDENCE = 'medium'
    CONDITIONAL_JUMP_CONFIDENCE = 'low'

    # Container defaults
    DEFAULT_SECTION = '.text'
    IN_REGION_ONLY = False     # Keep edges whose target leaves the analyzed region

    @classmethod
    def get_config_summary(cls):
        """Get a summary of current configuration."""
        return {
            'amd64_max_insn_len': cls.AMD64_MAX_INSN_LEN,
            'arm64_insn_len': cls.ARM64_INSN_LEN,
            'cet_markers': [marker.hex() for marker in cls.CET_MARKERS],
            'amd64_callee_saved': sorted(cls.AMD64_CALLEE_SAVED),
            'high_trust_prologues': sorted(cls.HIGH_TRUST_PROLOGUES),
            'call_confidence': cls.CALL_CONFIDENCE,
            'jump_confidence': cls.JUMP_CONFIDENCE,
            'conditional_jump_confidence': cls.CONDITIONAL_JUMP_CONFIDENCE,
            'default_section': cls.DEFAULT_SECTION,
            'in_region_only': cls.IN_REGION_ONLY,
        }
