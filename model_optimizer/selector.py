"""
Interactive model selection with a rich CLI
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, IntPrompt
from rich.table import Table

from .catalog import ModelCatalog
from .config import Settings
from .exceptions import LaunchFailed, PullFailed
from .hardware import HardwareProbe, ResourceProfile, SystemInfo, get_probe
from .installer import AssistantLauncher, OllamaInstaller
from .matcher import FitResult, MatchResult, Tier, match_catalog
from .modelfile import write_modelfile

logger = logging.getLogger(__name__)


class ModelChooser:
    """Answers the questions asked during an interactive run"""

    def confirm(self, question: str, default: bool = False) -> bool:
        raise NotImplementedError

    def choose_model(self, candidates: Sequence[FitResult]) -> Optional[FitResult]:
        """Pick one of the candidates, or None to skip installation"""
        raise NotImplementedError

    def ask_context(self, default: int) -> int:
        raise NotImplementedError


class RichPromptChooser(ModelChooser):
    """Terminal prompts using rich"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console if console is not None else Console()

    def confirm(self, question: str, default: bool = False) -> bool:
        return Confirm.ask(question, default=default, console=self.console)

    def choose_model(self, candidates: Sequence[FitResult]) -> Optional[FitResult]:
        if not candidates:
            return None

        for i, fit in enumerate(candidates, 1):
            marker = "[green]✓[/green]" if fit.tier is Tier.OPTIMAL else "[yellow]⚠[/yellow]"
            self.console.print(f"  [dim]{i}.[/dim] {marker} {fit.name}")
        self.console.print("  [dim]0.[/dim] Skip")

        choices = [str(i) for i in range(len(candidates) + 1)]
        choice = IntPrompt.ask("Select a model", choices=choices, console=self.console)
        if choice == 0:
            return None
        return candidates[choice - 1]

    def ask_context(self, default: int) -> int:
        while True:
            value = IntPrompt.ask("Enter context size", default=default, console=self.console)
            if value > 0:
                return value
            self.console.print("[red]Context size must be positive.[/red]")


class ModelSelector:
    """Drives one advisory run: probe, match, install, launch"""

    def __init__(
        self,
        catalog: Optional[ModelCatalog] = None,
        settings: Optional[Settings] = None,
        chooser: Optional[ModelChooser] = None,
        probe: Optional[HardwareProbe] = None,
        installer: Optional[OllamaInstaller] = None,
        launcher: Optional[AssistantLauncher] = None,
        console: Optional[Console] = None,
    ):
        self.settings = settings if settings is not None else Settings()
        self.console = console if console is not None else Console()
        self.catalog = catalog if catalog is not None else ModelCatalog(self.settings.catalog_path)
        self.chooser = chooser if chooser is not None else RichPromptChooser(self.console)
        self.probe = probe if probe is not None else get_probe()
        self.installer = installer if installer is not None else OllamaInstaller(self.settings.ollama_binary)
        self.launcher = launcher if launcher is not None else AssistantLauncher(
            self.settings.assistant_command, self.settings.assistant_args
        )
        self.system_info: Optional[SystemInfo] = None
        self.profile: Optional[ResourceProfile] = None

    async def detect_hardware(self) -> ResourceProfile:
        """Detect hardware with progress indicator"""
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True
        ) as progress:
            progress.add_task("Detecting hardware...", total=None)
            self.system_info = await self.probe.detect()

        self.profile = ResourceProfile.from_system_info(self.system_info)
        return self.profile

    def match(self) -> MatchResult:
        if self.profile is None:
            raise RuntimeError("Resource profile not available. Call detect_hardware() first.")
        return match_catalog(self.catalog, self.profile)

    def display_hardware_info(self) -> None:
        if not self.system_info:
            self.console.print("❌ No hardware information available", style="red")
            return

        table = Table(title="System Information", show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("CPU", self.system_info.cpu.name)
        table.add_row("CPU Cores", str(self.system_info.cpu.cores))
        table.add_row("Total RAM", f"{self.system_info.ram}GB")
        for gpu in self.system_info.gpus:
            gpu_text = f"{gpu.name} ({gpu.vram}GB)"
            if gpu.note:
                gpu_text += f" [dim]{gpu.note}[/dim]"
            table.add_row("GPU", gpu_text)

        self.console.print(Panel(table, title="🖥️ Hardware Detection Results", border_style="blue"))

    def display_resources(self) -> None:
        if not self.profile:
            return

        table = Table(title="Available Resources for Models", show_header=False)
        table.add_column("Resource", style="cyan")
        table.add_column("Available", style="green")

        table.add_row("Usable RAM", f"{self.profile.available_ram_gb}GB")
        table.add_row("Usable VRAM", f"{self.profile.available_vram_gb}GB")
        table.add_row("Max Model Size", f"{self.profile.max_model_size_gb}GB")
        if self.profile.is_unified_memory:
            table.add_row("Note", "Unified memory architecture")

        self.console.print(Panel(table, title="💾 Memory Analysis", border_style="yellow"))

    def display_recommendations(self, match: MatchResult) -> None:
        if match.optimal:
            table = Table(title="Optimal Choices")
            table.add_column("Model", style="bold green")
            table.add_column("Memory", style="yellow", justify="right")
            table.add_column("Context", style="blue", justify="right")
            table.add_column("Suggested Context", style="green", justify="right")
            table.add_column("Notes", style="dim")
            for fit in match.optimal:
                table.add_row(
                    fit.name,
                    f"{fit.descriptor.rec_gb}GB",
                    f"{fit.descriptor.context:,}",
                    f"{fit.adjusted_context:,}",
                    f"{fit.descriptor.description}; {fit.note}",
                )
            self.console.print(Panel(table, title="✓ Recommended Models for Coding", border_style="green"))
        else:
            self.console.print("[yellow]No optimal models for your configuration[/yellow]")

        if match.reduced:
            table = Table(title="Possible with Reduced Performance")
            table.add_column("Model", style="bold yellow")
            table.add_column("Minimum", style="yellow", justify="right")
            table.add_column("Recommended", style="yellow", justify="right")
            table.add_column("Reduce Context To", style="green", justify="right")
            table.add_column("Notes", style="dim")
            for fit in match.reduced:
                table.add_row(
                    fit.name,
                    f"{fit.descriptor.min_gb}GB",
                    f"{fit.descriptor.rec_gb}GB",
                    f"~{fit.adjusted_context:,}",
                    f"{fit.descriptor.description}; {fit.note}",
                )
            self.console.print(Panel(table, border_style="yellow"))

        if match.is_empty:
            lines = [
                f"[red]✗[/red] Your system ({match.max_model_size_gb}GB available) "
                "may struggle with larger models",
                "Consider these lightweight options:",
            ]
            lines.extend(f"• {name} ({gb}GB minimum)" for name, gb in match.lightweight_suggestions)
            self.console.print(Panel("\n".join(lines), title="No Suitable Models", border_style="red"))

    def install_flow(self, match: MatchResult) -> Optional[FitResult]:
        """Offer to pull a candidate, write a Modelfile and launch the assistant.

        Returns the installed candidate, or None when nothing was installed.
        """
        candidates = match.candidates
        if not candidates:
            return None
        if not self.chooser.confirm("Would you like to install a recommended model?"):
            return None

        fit = self.chooser.choose_model(candidates)
        if fit is None:
            return None

        self.console.print(f"\n[yellow]Pulling {fit.name}...[/yellow]")
        try:
            self.installer.pull(fit.name)
        except PullFailed as e:
            self.console.print(f"[red]❌ {e}[/red]")
            return None

        self.console.print("\n[green]Model installed successfully![/green]")
        self.console.print(f"Run with: [blue]ollama run {fit.name}[/blue]")

        if self.chooser.confirm("Create an optimized Modelfile?"):
            self.create_modelfile(fit)

        self.launch_flow(fit)
        return fit

    def create_modelfile(self, fit: FitResult) -> Path:
        context_size = self.chooser.ask_context(fit.adjusted_context)
        path = write_modelfile(fit.name, context_size, Path(self.settings.modelfile_name))
        self.console.print(f"[green]Created optimized Modelfile: {path}[/green]")
        self.console.print(f"To use: ollama create my-optimized-model -f {path}")
        return path

    def launch_flow(self, fit: FitResult) -> bool:
        """Offer to start the coding assistant; returns True when it ran cleanly"""
        identifier = self.launcher.model_identifier(fit.name)
        if not self.chooser.confirm(f"Launch {self.launcher.command} with {identifier}?"):
            return False

        try:
            if not self.launcher.is_installed():
                if not self.chooser.confirm(f"{self.launcher.command} is not installed. Install it now?"):
                    return False
                self.launcher.install()
            self.launcher.run(fit.name)
        except LaunchFailed as e:
            self.console.print(f"[red]❌ {e}[/red]")
            return False
        return True

    def display_tips(self) -> None:
        tips: List[str] = [
            "Close unnecessary applications to free up RAM",
            "Use quantized models (q4_K_M, q5_K_M) for better memory efficiency",
            "Adjust context window size if you experience out-of-memory errors",
            "For coding, models with 'coder' or 'code' in the name perform best",
        ]
        if self.profile and self.profile.is_unified_memory:
            tips.append("Your Apple Silicon Mac uses unified memory efficiently")
            tips.append("Metal acceleration is automatically enabled for better performance")

        self.console.print("\n[green]Optimization complete![/green]")
        self.console.print("[blue]Tips for best performance:[/blue]")
        for tip in tips:
            self.console.print(f"  • {tip}")

    async def run_interactive(self) -> MatchResult:
        """Run the whole advisory flow once"""
        self.console.print(Panel(
            "[bold cyan]Ollama Model Optimizer[/bold cyan]\n"
            "Selects coding models that fit your hardware",
            title="Welcome",
            border_style="blue"
        ))

        self.installer.ensure_running()

        await self.detect_hardware()
        self.display_hardware_info()
        self.display_resources()

        match = self.match()
        self.display_recommendations(match)

        self.install_flow(match)
        self.display_tips()
        return match
