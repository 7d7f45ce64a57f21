"""
Setup verification script for the NeuroSense report builder.
Checks dependencies, configuration, Gemini access and report templates.
"""
import asyncio
import sys
import os
from typing import List, Tuple

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    """Print colored status message."""
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def check_python_version() -> bool:
    """Check Python version is 3.10+."""
    version = sys.version_info
    if version.major == 3 and version.minor >= 10:
        print_status(f"Python version: {version.major}.{version.minor}.{version.micro}", True)
        return True
    else:
        print_status(f"Python version {version.major}.{version.minor} (requires 3.10+)", False)
        return False


async def check_dependencies() -> bool:
    """Check if required packages are installed."""
    required_packages = [
        "fastapi",
        "uvicorn",
        "pydantic_settings",
        "httpx",
        "docx",
        "aiofiles",
        "multipart",
    ]

    all_installed = True
    for package in required_packages:
        try:
            __import__(package)
            print_status(f"Package '{package}' installed", True)
        except ImportError:
            print_status(f"Package '{package}' missing", False)
            all_installed = False

    return all_installed


async def check_env_file() -> bool:
    """Check if .env file exists."""
    if os.path.exists(".env"):
        print_status(".env file exists", True)
        return True
    else:
        print_status(".env file missing (set GEMINI_API_KEY there or in the environment)", False)
        return False


async def check_gemini() -> bool:
    """Check the Gemini key is set and accepted by the models endpoint."""
    from app.config import settings

    if not settings.GEMINI_API_KEY:
        print_status("GEMINI_API_KEY is not set", False)
        return False

    try:
        import httpx

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(
                f"{settings.GEMINI_BASE_URL}/v1beta/models",
                params={"key": settings.GEMINI_API_KEY},
            )

        if response.status_code == 200:
            print_status("Gemini API key accepted", True)
            names = [m.get("name", "") for m in response.json().get("models", [])]
            wanted = settings.GEMINI_MODEL
            has_model = any(name.endswith(wanted) for name in names)
            print_status(f"Model ({wanted}): {'Found' if has_model else 'Missing'}", has_model)
            return has_model
        else:
            print_status(f"Gemini API error (status {response.status_code})", False)
            return False

    except Exception as e:
        print_status(f"Gemini connection failed: {str(e)}", False)
        return False


async def check_templates() -> bool:
    """Check each report kind's template exists and carries every schema tag."""
    from app.config import settings
    from app.errors import ReportBuilderError
    from app.models.report_kinds import build_default_catalog
    from app.services.template_filler import TemplateFiller

    filler = TemplateFiller(settings.TEMPLATE_DIR)
    all_ok = True

    for kind in build_default_catalog():
        try:
            tags = set(filler.list_tags(kind.template_filename))
        except ReportBuilderError as e:
            print_status(f"Template '{kind.template_filename}': {e.message}", False)
            all_ok = False
            continue

        missing = [key for key in kind.schema.keys if key not in tags]
        unknown = sorted(tags - set(kind.schema.keys))
        print_status(
            f"Template '{kind.template_filename}': {len(tags)} tags, {len(missing)} schema fields untagged",
            not missing,
        )
        if missing:
            print(f"  {YELLOW}Untagged: {', '.join(missing)}{RESET}")
            all_ok = False
        if unknown:
            print(f"  {YELLOW}Not in schema (rendered empty): {', '.join(unknown)}{RESET}")

    if not all_ok:
        print(f"  {YELLOW}Run: python generate_templates.py{RESET}")
    return all_ok


async def main():
    """Run all verification checks."""
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}NeuroSense Report Builder - Setup Verification{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

    checks: List[Tuple[str, callable]] = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("Environment File", check_env_file),
        ("Gemini API", check_gemini),
        ("Report Templates", check_templates),
    ]

    results = []

    for check_name, check_func in checks:
        print(f"\n{BLUE}Checking {check_name}...{RESET}")
        try:
            result = await check_func()
            results.append(result)
        except Exception as e:
            print_status(f"Error during check: {str(e)}", False)
            results.append(False)

    # Summary
    print(f"\n{BLUE}{'='*60}{RESET}")
    passed = sum(results)
    total = len(results)

    if passed == total:
        print(f"{GREEN}✓ All checks passed! ({passed}/{total}){RESET}")
        print(f"\n{GREEN}You're ready to run the backend:{RESET}")
        print(f"  uvicorn app.main:app --reload")
    else:
        print(f"{RED}✗ Some checks failed ({passed}/{total} passed){RESET}")
        print(f"\n{YELLOW}Please fix the issues above before running the backend.{RESET}")
        sys.exit(1)

    print(f"{BLUE}{'='*60}{RESET}\n")


if __name__ == "__main__":
    asyncio.run(main())
