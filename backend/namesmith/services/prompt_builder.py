"""
Naming Prompt Builder
Renders the versioned YAML naming template for a request
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

from namesmith.models import GenerationMode

TEMPLATE_PATH = Path(__file__).parent.parent / "prompts" / "naming.yaml"


@dataclass(frozen=True)
class NamingPrompt:
    system: str
    user: str
    template_version: str

    @property
    def full_text(self) -> str:
        return f"{self.system}\n\n{self.user}"


@lru_cache()
def load_template(path: str = str(TEMPLATE_PATH)) -> dict:
    with open(path, "r") as f:
        return yaml.safe_load(f)


class PromptBuilder:
    """Builds system and user prompts for one generation"""

    def __init__(self, names_per_model: int = 10, template_path: Optional[Path] = None):
        self.names_per_model = names_per_model
        self.template = load_template(str(template_path or TEMPLATE_PATH))

    def build(self, business_description: str, mode: GenerationMode, deep_thinking: bool) -> NamingPrompt:
        mode = GenerationMode(mode)
        mode_spec = self.template["modes"][mode.value]

        system = self.template["system"].format(count=self.names_per_model)
        user = self.template["user"].format(
            count=self.names_per_model,
            mode_label=mode_spec["label"],
            description=business_description.strip(),
            mode_instructions=mode_spec["instructions"],
        )
        if deep_thinking:
            user = f"{user}\n\n{self.template['deep_thinking']}"

        return NamingPrompt(
            system=system,
            user=user,
            template_version=str(self.template.get("version", "1.0.0")),
        )
