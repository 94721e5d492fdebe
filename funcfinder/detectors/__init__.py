from .base_detector import BaseDetector
from .callsite_detector import AMD64CallSiteDetector, ARM64CallSiteDetector, CallSiteDetector
from .prologue_detector import AMD64PrologueDetector, ARM64PrologueDetector, PrologueDetector
