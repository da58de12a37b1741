from pathlib import Path

import yaml
from pydantic import ValidationError

from quillpress.rules.models import Rules


def load_rules(path: Path | str) -> Rules:
    """
    Load and validate the engine rules.

    Raises FileNotFoundError if the file is missing, ValueError if the YAML does
    not parse or does not match the Rules schema.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Rules file {path} must contain a mapping")

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e
