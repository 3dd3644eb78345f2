"""
Contract Validators — JSON Schema контракты на границе harness

Две границы:
- state_snapshot.json: payload, который отдаёт snapshot provider. Проверяется
  до построения StateSnapshot, так что структурные ошибки чтения не доходят
  до инвариантов.
- step_verdict.json: запись verdict stream, по одной на шаг. Условные правила
  (skipped → passed, failed → error_kind и diagnostics) заданы в схеме.

Валидаторы Draft 2020-12 строятся один раз на схему и переиспользуются
между шагами run.
"""

import json
from pathlib import Path
from typing import Any, Iterator, Mapping

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

SCHEMA_DIR = Path(__file__).parent / "schema"

STATE_SNAPSHOT = "state_snapshot"
STEP_VERDICT = "step_verdict"


class SchemaLoader:
    """
    Загрузчик схем контрактов с кэшем по имени.

    Каждая схема проходит meta-validation Draft 2020-12 при первой загрузке.
    """

    def __init__(self, schema_dir: Path | None = None):
        self.schema_dir = schema_dir or SCHEMA_DIR
        if not self.schema_dir.is_dir():
            raise RuntimeError(f"Contract schema directory not found: {self.schema_dir}")
        self._cache: dict[str, dict[str, Any]] = {}

    def available(self) -> list[str]:
        """Имена схем в каталоге (без .json)."""
        return sorted(path.stem for path in self.schema_dir.glob("*.json"))

    def load_schema(self, schema_name: str) -> dict[str, Any]:
        """
        Схема контракта по имени.

        Raises:
            FileNotFoundError: в каталоге нет {schema_name}.json
            ValueError: файл не является схемой Draft 2020-12
        """
        cached = self._cache.get(schema_name)
        if cached is not None:
            return cached

        path = self.schema_dir / f"{schema_name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Contract schema '{schema_name}' not found in {self.schema_dir}")

        schema = json.loads(path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Contract schema '{schema_name}' is not a valid 2020-12 schema: {e.message}") from e

        self._cache[schema_name] = schema
        return schema


_LOADER = SchemaLoader()


def error_path(error: ValidationError) -> str:
    """Путь до поля с ошибкой: 'cdp.safes.1.borrowed_amount' ('$' для корня)."""
    return ".".join(str(part) for part in error.absolute_path) or "$"


class ContractValidator:
    """Проверка payload против одной схемы контракта."""

    def __init__(self, schema_name: str, loader: SchemaLoader | None = None):
        self.schema_name = schema_name
        self.schema = (loader or _LOADER).load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Mapping[str, Any]) -> None:
        """
        Raises:
            ValidationError: первое найденное нарушение контракта
        """
        self.validator.validate(data)

    def is_valid(self, data: Mapping[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Mapping[str, Any]) -> Iterator[ValidationError]:
        """Все нарушения, упорядоченные по пути до поля."""
        return iter(sorted(self.validator.iter_errors(data), key=error_path))

    def describe(self, data: Mapping[str, Any]) -> list[str]:
        """Нарушения в виде 'path: message' для диагностики."""
        return [f"{error_path(error)}: {error.message}" for error in self.iter_errors(data)]


class StateSnapshotValidator(ContractValidator):
    """Контракт payload снапшота состояния SUT."""

    def __init__(self, loader: SchemaLoader | None = None):
        super().__init__(STATE_SNAPSHOT, loader)


class StepVerdictValidator(ContractValidator):
    """Контракт записи verdict stream."""

    def __init__(self, loader: SchemaLoader | None = None):
        super().__init__(STEP_VERDICT, loader)


# Экземпляры на модуль: verdict сериализуется на каждом шаге
_STATE_SNAPSHOT_VALIDATOR = StateSnapshotValidator()
_STEP_VERDICT_VALIDATOR = StepVerdictValidator()


def validate_state_snapshot(data: Mapping[str, Any]) -> None:
    """
    Raises:
        ValidationError: payload снапшота нарушает контракт
    """
    _STATE_SNAPSHOT_VALIDATOR.validate(data)


def validate_step_verdict(data: Mapping[str, Any]) -> None:
    """
    Raises:
        ValidationError: запись verdict stream нарушает контракт
    """
    _STEP_VERDICT_VALIDATOR.validate(data)
