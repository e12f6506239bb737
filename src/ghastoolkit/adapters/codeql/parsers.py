"""Parsers for CodeQL analysis output (SARIF and CSV)."""

import csv
import json
from pathlib import Path
from typing import Any, Optional

from ghastoolkit.core.errors import GHASError
from ghastoolkit.models.sarif import CWE, SarifResult, Severity
from ghastoolkit.utils.logging import get_logger

logger = get_logger()

CWE_TAG_PREFIX = "external/cwe/cwe-"


class ParserError(GHASError):
    """Results file could not be parsed."""

    pass


class SARIFParser:
    """Parser for SARIF results files."""

    def parse_file(self, sarif_path: Path) -> list[SarifResult]:
        """
        Parse a SARIF file.

        Args:
            sarif_path: Path to the SARIF file

        Returns:
            Results from every run in the file

        Raises:
            ParserError: If the file is missing or not valid SARIF JSON
        """
        if not sarif_path.exists():
            raise ParserError(f"SARIF file does not exist: {sarif_path}")

        try:
            with open(sarif_path) as f:
                sarif_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ParserError(f"Invalid JSON in SARIF file: {e}") from e
        except OSError as e:
            raise ParserError(f"Failed to read SARIF file: {e}") from e

        results = self.parse(sarif_data)
        logger.info("sarif_parsed", file=str(sarif_path), results_count=len(results))
        return results

    def parse(self, sarif_data: dict[str, Any]) -> list[SarifResult]:
        """
        Parse a SARIF document.

        Results that cannot be parsed are skipped with a warning.

        Raises:
            ParserError: If the document is not a SARIF object
        """
        if not isinstance(sarif_data, dict) or not isinstance(
            sarif_data.get("runs", []), list
        ):
            raise ParserError("Invalid SARIF structure: expected an object with 'runs'")

        results: list[SarifResult] = []
        for run in sarif_data.get("runs", []):
            results.extend(self._parse_run(run))
        return results

    def _parse_run(self, run: dict[str, Any]) -> list[SarifResult]:
        driver = run.get("tool", {}).get("driver", {})
        tool = driver.get("name")
        rules = {rule["id"]: rule for rule in driver.get("rules", []) if rule.get("id")}

        parsed: list[SarifResult] = []
        for index, result in enumerate(run.get("results", [])):
            try:
                item = self._parse_result(result, rules, tool)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("sarif_result_parse_failed", result_index=index, error=str(e))
                continue
            if item is not None:
                parsed.append(item)
        return parsed

    def _parse_result(
        self,
        result: dict[str, Any],
        rules: dict[str, dict[str, Any]],
        tool: Optional[str],
    ) -> Optional[SarifResult]:
        rule_id = result.get("ruleId") or result.get("rule", {}).get("id")
        if not rule_id:
            logger.warning("sarif_result_missing_rule_id")
            return None

        locations = result.get("locations") or []
        if not locations:
            logger.warning("sarif_result_no_locations", rule_id=rule_id)
            return None

        physical = locations[0].get("physicalLocation", {})
        region = physical.get("region", {})
        file_path = Path(physical.get("artifactLocation", {}).get("uri", ""))
        start_line = region.get("startLine", 1)
        end_line = region.get("endLine", start_line)

        rule = rules.get(rule_id, {})

        return SarifResult(
            id=f"{rule_id}_{file_path.name}_{start_line}",
            rule_id=rule_id,
            severity=self._severity(result, rule),
            cwes=self._cwes(rule),
            file_path=file_path,
            start_line=start_line,
            end_line=end_line,
            message=result.get("message", {}).get("text", "No description available"),
            snippet=region.get("snippet", {}).get("text"),
            tool=tool,
        )

    def _severity(self, result: dict[str, Any], rule: dict[str, Any]) -> Severity:
        # security-severity score first, then levels, then CodeQL's problem.severity
        properties = rule.get("properties", {})
        if score := properties.get("security-severity"):
            try:
                return Severity.from_security_severity(float(score))
            except ValueError:
                logger.debug("sarif_invalid_security_severity", value=score)

        if level := result.get("level"):
            return Severity.from_level(level)
        if level := rule.get("defaultConfiguration", {}).get("level"):
            return Severity.from_level(level)
        if problem := properties.get("problem.severity"):
            return Severity.from_level(problem)
        return Severity.MEDIUM

    def _cwes(self, rule: dict[str, Any]) -> list[CWE]:
        tags = rule.get("properties", {}).get("tags", [])
        return [
            CWE(id=tag[len(CWE_TAG_PREFIX):])
            for tag in tags
            if tag.lower().startswith(CWE_TAG_PREFIX)
        ]


class CSVParser:
    """Parser for ``codeql database analyze --format csv`` output.

    The CSV has no header row; columns are name, description, severity,
    message, path, start line, start column, end line, end column.
    """

    COLUMNS = (
        "name",
        "description",
        "severity",
        "message",
        "path",
        "start_line",
        "start_column",
        "end_line",
        "end_column",
    )

    def parse_file(self, csv_path: Path) -> list[SarifResult]:
        """
        Parse a CSV results file.

        Raises:
            ParserError: If the file is missing or not valid CSV
        """
        if not csv_path.exists():
            raise ParserError(f"CSV file does not exist: {csv_path}")

        try:
            with open(csv_path, newline="", encoding="utf-8") as f:
                rows = list(csv.reader(f))
        except csv.Error as e:
            raise ParserError(f"Invalid CSV format: {e}") from e
        except OSError as e:
            raise ParserError(f"Failed to read CSV file: {e}") from e

        results = self.parse(rows)
        logger.info("csv_parsed", file=str(csv_path), results_count=len(results))
        return results

    def parse(self, rows: list[list[str]]) -> list[SarifResult]:
        """Parse CSV rows, skipping rows that are too short or malformed."""
        results: list[SarifResult] = []
        for index, row in enumerate(rows):
            if len(row) < len(self.COLUMNS):
                logger.warning("csv_row_too_short", row_index=index, columns=len(row))
                continue
            record = dict(zip(self.COLUMNS, row))
            file_path = Path(record["path"].lstrip("/"))
            try:
                start_line = int(record["start_line"])
                results.append(
                    SarifResult(
                        id=f"{record['name']}_{file_path.name}_{start_line}",
                        rule_id=record["name"],
                        severity=Severity.from_level(record["severity"]),
                        file_path=file_path,
                        start_line=start_line,
                        end_line=int(record["end_line"]),
                        message=record["message"] or record["description"],
                    )
                )
            except ValueError as e:
                logger.warning("csv_row_parse_failed", row_index=index, error=str(e))
        return results
