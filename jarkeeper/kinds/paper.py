from pathlib import Path

from jarkeeper.kinds.base import ServerKind


class PaperKind(ServerKind):
    """
    PaperMC server jars, as published by the papermc.io build API.
    """
    name = "paper"
    project = "paper"

    def server_args(self, configs_dir: Path, worlds_dir: Path, plugins_dir: Path) -> list[str]:
        return [
            # No GUI window; the process is driven through its standard streams
            "--nogui",
            # Config files
            "--paper-settings", str(configs_dir / "paper.yml"),
            "--spigot-settings", str(configs_dir / "spigot.yml"),
            "--bukkit-settings", str(configs_dir / "bukkit.yml"),
            "--config", str(configs_dir / "server.properties"),
            "--commands-settings", str(configs_dir / "commands.yml"),
            # Data files
            "--universe", str(worlds_dir),
            "--plugins", str(plugins_dir),
        ]
