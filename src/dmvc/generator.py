"""Model and controller file generator.

Renders boilerplate modules for a new resource:

    models/<name>.py                     schemas + BaseModel subclass
    controllers/<name>_controller.py     route registration function
"""

from __future__ import annotations

import re
from pathlib import Path

MODEL_TEMPLATE = '''\
"""${class_name} model."""

from pydantic import BaseModel as Schema

from dmvc import BaseModel, DynamoDBAdapter


class ${class_name}Schema(Schema):
    ${id_name}: str
    # define additional attributes here


class ${class_name}KeySchema(Schema):
    ${id_name}: str


class ${class_name}Model(BaseModel):
    schema = ${class_name}Schema
    key_schema = ${class_name}KeySchema

    def create_adapter(self):
        return DynamoDBAdapter(
            "${class_name}",
            pk_composite=["${id_name}"],
            sk_composite=["${id_name}"],
        )
'''

CONTROLLER_TEMPLATE = '''\
"""${class_name} routes."""

from dmvc import BaseController, ControllerOptions

from models.${module_name} import ${class_name}Model


def register_${module_name}_controller(app):
    BaseController.register(
        app,
        ControllerOptions(model=${class_name}Model, base_path="${base_path}"),
    )
'''


def to_pascal_case(name: str) -> str:
    """Convert "todo-item" / "todo_item" / "todo item" to "TodoItem"."""
    words = re.split(r"[-_\s]+", name.strip())
    return "".join(word[:1].upper() + word[1:] for word in words if word)


def to_snake_case(name: str) -> str:
    """Convert "TodoItem" / "todo-item" to "todo_item"."""
    text = re.sub(r"[-\s]+", "_", name.strip())
    text = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", text)
    return re.sub(r"_+", "_", text).lower()


def _render(template: str, values: dict[str, str]) -> str:
    content = template
    for key, value in values.items():
        content = content.replace("${" + key + "}", value)
    return content


def _write_new(directory: Path, filename: str, content: str, kind: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    package_init = directory / "__init__.py"
    if not package_init.exists():
        package_init.write_text("")

    filepath = directory / filename
    if filepath.exists():
        raise FileExistsError(f"{kind} already exists: {filepath}")
    with open(filepath, "w") as f:
        f.write(content)
    return filepath


def generate_model(name: str, base_dir: Path | None = None) -> Path:
    """Generate a model module.

    Args:
        name: Resource name (any case)
        base_dir: Project root (defaults to the current directory)

    Returns:
        Path to the generated file.

    Raises:
        FileExistsError: If the model module already exists.
    """
    base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
    module_name = to_snake_case(name)
    content = _render(
        MODEL_TEMPLATE,
        {"class_name": to_pascal_case(name), "id_name": module_name},
    )
    return _write_new(base_dir / "models", f"{module_name}.py", content, "Model")


def generate_controller(name: str, base_dir: Path | None = None) -> Path:
    """Generate a controller module registering routes at /<name>s.

    Raises:
        FileExistsError: If the controller module already exists.
    """
    base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
    module_name = to_snake_case(name)
    content = _render(
        CONTROLLER_TEMPLATE,
        {
            "class_name": to_pascal_case(name),
            "module_name": module_name,
            "base_path": f"/{name.lower()}s",
        },
    )
    return _write_new(
        base_dir / "controllers", f"{module_name}_controller.py", content, "Controller"
    )
