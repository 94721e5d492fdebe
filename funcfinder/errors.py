"""
Exception types raised by funcfinder.

Decode failures are not exceptions: the decoder absorbs them and the
detectors resynchronize. Only out-of-contract input (an architecture
outside the supported set) and container problems surface as errors.
"""


class FuncFinderError(Exception):
    """Base class for all funcfinder errors."""


class UnsupportedArchitectureError(FuncFinderError, ValueError):
    """Raised when an architecture tag is not in the supported set."""

    def __init__(self, arch, supported=None):
        self.arch = arch
        self.supported = list(supported or [])
        message = f"unsupported architecture: {arch}"
        if self.supported:
            message += f" (supported: {', '.join(self.supported)})"
        super().__init__(message)


class ContainerError(FuncFinderError):
    """Base class for failures while extracting code from a binary container."""


class MalformedContainerError(ContainerError):
    """The input is not a parseable container (bad magic, truncated header, ...)."""


class SectionNotFoundError(ContainerError):
    """The requested code section does not exist in the container."""

    def __init__(self, section_name: str):
        self.section_name = section_name
        super().__init__(f"no {section_name} section found")


class ContainerReadError(ContainerError):
    """An I/O error occurred while reading the container."""


class SectionReadError(ContainerReadError):
    """The code section exists but its contents could not be read."""


class UnsupportedMachineError(ContainerError, UnsupportedArchitectureError):
    """The container header names a machine type funcfinder cannot analyze."""

    def __init__(self, machine, supported=None):
        UnsupportedArchitectureError.__init__(self, machine, supported)
        self.machine = machine
