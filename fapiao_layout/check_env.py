import sys
import importlib
from typing import Dict, Any, List

# import name -> what it is needed for
REQUIRED_PACKAGES = {
    "pdfplumber": "PDF text tokens",
    "pandas": "Excel export",
    "openpyxl": "Excel export",
}


def check_env(required_packages: List[str] = None) -> Dict[str, Any]:
    """Report which parser dependencies import, with their versions."""
    packages = required_packages or list(REQUIRED_PACKAGES)
    result = {
        "available": False,
        "python_version": sys.version,
        "versions": {},
        "missing": [],
        "errors": {}
    }

    for package in packages:
        try:
            module = importlib.import_module(package)
        except Exception as e:
            result["missing"].append(package)
            result["errors"][package] = str(e)
            continue
        result["versions"][package] = getattr(module, "__version__", "unknown")

    result["available"] = not result["missing"]
    return result
