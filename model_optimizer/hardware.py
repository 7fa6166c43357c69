"""
Hardware detection and resource estimation

Each supported platform has its own HardwareProbe. GPU memory figures from
name lookups are best-effort estimates and are never verified.
"""

import asyncio
import logging
import os
import platform
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

import psutil

from .exceptions import ProbeUnavailable

logger = logging.getLogger(__name__)

# Memory kept free for the operating system and other applications
SYSTEM_RESERVE_GB = 4

# Conservative estimate used when no GPU tool answers
INTEGRATED_VRAM_GB = 2

# Intel Mac discrete GPUs: AMD/Radeon and NVIDIA parts estimated at 8 GB
MAC_DISCRETE_VRAM_GB = 8

# Substring -> GB, checked in order, case-insensitive. More specific names first.
VRAM_TABLE: List[Tuple[str, int]] = [
    ("RTX 4090", 24),
    ("RTX 4080", 16),
    ("RTX 4070 Ti", 12),
    ("RTX 4070", 12),
    ("RTX 4060 Ti", 8),
    ("RTX 4060", 8),
    ("RTX 3090", 24),
    ("RTX 3080 Ti", 12),
    ("RTX 3080", 10),
    ("RTX 3070", 8),
    ("RTX 3060 Ti", 8),
    ("RTX 3060", 12),
    ("RTX 2080", 8),
    ("RTX 2070", 8),
    ("RTX 2060", 6),
    ("GTX 1080", 8),
    ("GTX 1070", 8),
    ("GTX 1660", 6),
    ("RX 7900", 20),
    ("RX 7800", 16),
    ("RX 7600", 8),
    ("RX 6900", 16),
    ("RX 6800", 16),
    ("RX 6700", 12),
    ("RX 6600", 8),
    ("Radeon Pro", 8),
    ("Radeon", 8),
    ("AMD", 8),
    ("NVIDIA", 8),
    ("GeForce", 8),
]


@dataclass
class CPUInfo:
    """CPU information"""
    name: str
    cores: int
    arch: str


@dataclass
class GPUInfo:
    """GPU information"""
    name: str
    vram: int
    vendor: str
    note: Optional[str] = None
    unified: bool = False


@dataclass
class SystemInfo:
    """Raw probe output"""
    os: str
    arch: str
    cpu: CPUInfo
    ram: int
    gpus: List[GPUInfo] = field(default_factory=list)

    @property
    def vram(self) -> int:
        """VRAM of the largest GPU"""
        return max((gpu.vram for gpu in self.gpus), default=0)

    @property
    def has_nvidia(self) -> bool:
        return any(gpu.vendor == "NVIDIA" for gpu in self.gpus)

    @property
    def has_amd(self) -> bool:
        return any(gpu.vendor == "AMD" for gpu in self.gpus)

    @property
    def is_unified_memory(self) -> bool:
        return any(gpu.unified for gpu in self.gpus)


@dataclass(frozen=True)
class ResourceProfile:
    """Memory budget for a single run"""
    total_ram_gb: int
    vram_gb: int
    is_unified_memory: bool = False

    @property
    def available_ram_gb(self) -> int:
        return max(0, self.total_ram_gb - SYSTEM_RESERVE_GB)

    @property
    def available_vram_gb(self) -> int:
        if self.is_unified_memory:
            return self.available_ram_gb
        return self.vram_gb

    @property
    def max_model_size_gb(self) -> int:
        """The binding constraint between RAM and VRAM"""
        return min(self.available_ram_gb, self.available_vram_gb)

    @classmethod
    def from_system_info(cls, system_info: SystemInfo) -> "ResourceProfile":
        return cls(
            total_ram_gb=system_info.ram,
            vram_gb=system_info.vram,
            is_unified_memory=system_info.is_unified_memory,
        )


def estimate_vram(gpu_name: str) -> int:
    """Guess VRAM from a GPU model name"""
    lowered = gpu_name.lower()
    for substring, gb in VRAM_TABLE:
        if substring.lower() in lowered:
            return gb
    return INTEGRATED_VRAM_GB


def estimate_mac_vram(gpu_name: str) -> int:
    """Coarse VRAM guess for the display adapter of an Intel Mac"""
    if vendor_from_name(gpu_name) in ("AMD", "NVIDIA"):
        return MAC_DISCRETE_VRAM_GB
    return INTEGRATED_VRAM_GB


def vendor_from_name(gpu_name: str) -> str:
    lowered = gpu_name.lower()
    if any(key in lowered for key in ("nvidia", "geforce", "quadro", "rtx", "gtx")):
        return "NVIDIA"
    if "amd" in lowered or "radeon" in lowered:
        return "AMD"
    if "intel" in lowered:
        return "Intel"
    if "apple" in lowered:
        return "Apple"
    return "Unknown"


class HardwareProbe:
    """Base probe; subclasses add the platform specific GPU detection"""

    system = "Unknown"

    async def detect(self) -> SystemInfo:
        """Probe CPU, RAM and GPUs one after another"""
        logger.info("Detecting hardware configuration...")

        cpu = await self.detect_cpu()
        ram = await self.detect_ram()

        try:
            gpus = await self.detect_gpus(cpu, ram)
        except ProbeUnavailable as e:
            logger.warning(f"GPU detection unavailable: {e}")
            gpus = []

        if not gpus:
            gpus = [GPUInfo(
                name="Integrated Graphics",
                vram=INTEGRATED_VRAM_GB,
                vendor="Unknown",
                note="Estimated",
            )]

        return SystemInfo(
            os=self.system,
            arch=platform.machine(),
            cpu=cpu,
            ram=ram,
            gpus=gpus,
        )

    async def detect_cpu(self) -> CPUInfo:
        name = platform.processor() or "Unknown"
        try:
            name = await self._cpu_name() or name
        except (OSError, ProbeUnavailable) as e:
            logger.warning(f"Failed to get detailed CPU info: {e}")
        return CPUInfo(name=name, cores=self._cpu_cores(), arch=platform.machine())

    async def _cpu_name(self) -> Optional[str]:
        return None

    def _cpu_cores(self) -> int:
        return psutil.cpu_count(logical=False) or os.cpu_count() or 1

    async def detect_ram(self) -> int:
        """Total system RAM in whole GB"""
        return psutil.virtual_memory().total // (1024 ** 3)

    async def detect_gpus(self, cpu: CPUInfo, ram: int) -> List[GPUInfo]:
        raise ProbeUnavailable(f"No GPU probe for platform {platform.system()}")

    async def _run(self, *args: str) -> str:
        """Run a probing tool and return its stdout"""
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError:
            raise ProbeUnavailable(f"{args[0]} not found")

        stdout, _ = await proc.communicate()
        if proc.returncode != 0:
            raise ProbeUnavailable(f"{args[0]} exited with code {proc.returncode}")
        return stdout.decode(errors="replace")

    async def _detect_nvidia_smi(self) -> List[GPUInfo]:
        stdout = await self._run(
            "nvidia-smi", "--query-gpu=name,memory.total",
            "--format=csv,noheader,nounits"
        )
        gpus = []
        for line in stdout.strip().splitlines():
            parts = [part.strip() for part in line.split(",")]
            if len(parts) != 2:
                continue
            try:
                vram_mb = float(parts[1])
            except ValueError:
                logger.debug(f"Unparseable nvidia-smi line: {line}")
                continue
            gpus.append(GPUInfo(name=parts[0], vram=int(round(vram_mb / 1024)), vendor="NVIDIA"))
        return gpus


class MacOSProbe(HardwareProbe):
    system = "Darwin"

    async def _cpu_name(self) -> Optional[str]:
        return (await self._run("sysctl", "-n", "machdep.cpu.brand_string")).strip()

    async def detect_gpus(self, cpu: CPUInfo, ram: int) -> List[GPUInfo]:
        if "Apple" in cpu.name:
            return [GPUInfo(
                name="Apple Silicon (Unified Memory)",
                vram=ram,
                vendor="Apple",
                note="Unified memory (shared with CPU)",
                unified=True,
            )]

        # Intel Mac: first display adapter decides
        stdout = await self._run("system_profiler", "SPDisplaysDataType")
        match = re.search(r"Chipset Model:\s*(.+)", stdout)
        if not match:
            raise ProbeUnavailable("system_profiler reported no display adapter")

        name = match.group(1).strip()
        return [GPUInfo(
            name=name,
            vram=estimate_mac_vram(name),
            vendor=vendor_from_name(name),
            note="Estimated from model name",
        )]


class LinuxProbe(HardwareProbe):
    system = "Linux"

    async def _cpu_name(self) -> Optional[str]:
        with open("/proc/cpuinfo", "r") as f:
            for line in f:
                if "model name" in line:
                    return line.split(":", 1)[1].strip()
        return None

    async def detect_gpus(self, cpu: CPUInfo, ram: int) -> List[GPUInfo]:
        gpus = []
        available = False

        try:
            gpus.extend(await self._detect_nvidia_smi())
            available = True
        except ProbeUnavailable as e:
            logger.debug(f"nvidia-smi: {e}")

        try:
            gpus.extend(await self._detect_rocm_smi())
            available = True
        except ProbeUnavailable as e:
            logger.debug(f"rocm-smi: {e}")

        if not available:
            raise ProbeUnavailable("neither nvidia-smi nor rocm-smi is available")
        return gpus

    async def _detect_rocm_smi(self) -> List[GPUInfo]:
        stdout = await self._run("rocm-smi", "--showmeminfo", "vram")
        gpus = []
        for match in re.finditer(r"VRAM Total Memory \(B\):\s*(\d+)", stdout):
            vram = int(round(int(match.group(1)) / 1024 ** 3))
            gpus.append(GPUInfo(name=f"AMD GPU {len(gpus)}", vram=vram, vendor="AMD"))

        if not gpus:
            # Older rocm-smi releases report MB
            for match in re.finditer(r"Total\s+:\s+(\d+)\s+MB", stdout):
                vram = int(round(int(match.group(1)) / 1024))
                gpus.append(GPUInfo(name=f"AMD GPU {len(gpus)}", vram=vram, vendor="AMD"))
        return gpus


class WindowsProbe(HardwareProbe):
    system = "Windows"

    async def detect_gpus(self, cpu: CPUInfo, ram: int) -> List[GPUInfo]:
        try:
            gpus = await self._detect_nvidia_smi()
            if gpus:
                return gpus
        except ProbeUnavailable as e:
            logger.debug(f"nvidia-smi: {e}")

        # AdapterRAM is capped at 4GB, so only the adapter names are used
        stdout = await self._run(
            "powershell", "-NoProfile", "-Command",
            "Get-CimInstance Win32_VideoController | Select-Object -ExpandProperty Name"
        )
        gpus = []
        for line in stdout.splitlines():
            name = line.strip()
            if name:
                gpus.append(GPUInfo(
                    name=name,
                    vram=estimate_vram(name),
                    vendor=vendor_from_name(name),
                    note="Estimated from model name",
                ))
        return gpus


PROBES: Dict[str, Type[HardwareProbe]] = {
    "Darwin": MacOSProbe,
    "Linux": LinuxProbe,
    "Windows": WindowsProbe,
}


def get_probe(system: Optional[str] = None) -> HardwareProbe:
    """Select the probe for the running (or given) platform"""
    system = system or platform.system()
    probe_cls = PROBES.get(system, HardwareProbe)
    logger.debug(f"Using {probe_cls.__name__} for {system}")
    return probe_cls()
