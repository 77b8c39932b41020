"""Project and package scaffolding behind the CLI commands."""

from .build import build_package, clean_package, generate_lit_action
from .deploy import deploy_package, explorer_link
from .detect import VincentPackage, detect_package, inspect_package, list_packages
from .packages import create_package, create_package_from_template, template_variables
from .project import InitReport, initialize_project
from .template_loader import load_manifest, render_template, template_files, to_camel_case
from .version import UpdateInfo, check_for_updates, install_version, installed_version

__all__ = [
    "InitReport",
    "UpdateInfo",
    "VincentPackage",
    "build_package",
    "check_for_updates",
    "clean_package",
    "create_package",
    "create_package_from_template",
    "deploy_package",
    "detect_package",
    "explorer_link",
    "generate_lit_action",
    "initialize_project",
    "inspect_package",
    "install_version",
    "installed_version",
    "list_packages",
    "load_manifest",
    "render_template",
    "template_files",
    "template_variables",
    "to_camel_case",
]
