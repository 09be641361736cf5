"""
Framework detection.

Classification is an ordered, first-match table of rules. Meta-frameworks come
before the UI libraries they are built on (Next.js before React, SvelteKit
before Svelte), so a project declaring both always gets the meta-framework
profile.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .exceptions import ClassificationError
from .models import Category, DeploymentProfile, INTEGRATED_SERVER
from .utils import (
    print_info, print_success, print_debug, print_step, load_json_file, list_directory, log_to_file
)
from ..config.constants import (
    MANIFEST_FILE, MAIN_FILE_CANDIDATES, BUILD_COMMAND, INTEGRATED_START_COMMAND,
    NODE_START_COMMAND, FIXED_FULLSTACK_PORT, BUNDLER_DEPENDENCIES, BUNDLER_SCRIPT_PATTERN
)


@dataclass
class ProjectEvidence:
    """What the rules are allowed to look at"""
    project_dir: Path
    manifest: Dict
    dependencies: Dict[str, str]
    scripts: Dict[str, str]

    @classmethod
    def from_manifest(cls, project_dir: Path, manifest: Dict) -> "ProjectEvidence":
        dependencies = {
            **(manifest.get('dependencies') or {}),
            **(manifest.get('devDependencies') or {})
        }
        return cls(project_dir, manifest, dependencies, manifest.get('scripts') or {})

    def has_dep(self, *names: str) -> bool:
        return any(name in self.dependencies for name in names)

    def has_file(self, *names: str) -> bool:
        return any((self.project_dir / name).is_file() for name in names)

    def has_bundler(self) -> bool:
        if self.has_dep(*BUNDLER_DEPENDENCIES):
            return True
        return any(
            re.search(BUNDLER_SCRIPT_PATTERN, str(self.scripts.get(script, '')))
            for script in ('build', 'start')
        )


@dataclass
class FrameworkRule:
    name: str
    matches: Callable[[ProjectEvidence], bool]
    profile: Callable[[ProjectEvidence], DeploymentProfile]


def find_main_file(project_dir: Path, manifest: Optional[Dict] = None) -> Optional[str]:
    """Locate the application's entry file.

    The manifest ``main`` field wins when it names an existing file; otherwise
    the first existing candidate from MAIN_FILE_CANDIDATES is returned.
    """
    print_debug("Looking for main application file...")
    main_field = (manifest or {}).get('main')
    if isinstance(main_field, str) and main_field and (project_dir / main_field).is_file():
        print_debug(f"Main file from package.json: {main_field}")
        return main_field

    for candidate in MAIN_FILE_CANDIDATES:
        if (project_dir / candidate).is_file():
            print_debug(f"Found main file: {candidate}")
            return candidate

    print_debug("No main file found")
    return None


def _integrated(name: str, port: Optional[int] = None) -> Callable[[ProjectEvidence], DeploymentProfile]:
    def build(evidence: ProjectEvidence) -> DeploymentProfile:
        return DeploymentProfile(
            framework_name=name,
            category=Category.FULLSTACK,
            build_command=BUILD_COMMAND,
            start_command=INTEGRATED_START_COMMAND,
            entry_point=INTEGRATED_SERVER,
            port=port
        )
    return build


def _static(name: str, artifact_dir: str) -> Callable[[ProjectEvidence], DeploymentProfile]:
    def build(evidence: ProjectEvidence) -> DeploymentProfile:
        return DeploymentProfile(
            framework_name=name,
            category=Category.FRONTEND,
            build_command=BUILD_COMMAND,
            artifact_dir=artifact_dir,
            serves_static=True
        )
    return build


def _backend(name: str) -> Callable[[ProjectEvidence], DeploymentProfile]:
    def build(evidence: ProjectEvidence) -> DeploymentProfile:
        return DeploymentProfile(
            framework_name=name,
            category=Category.BACKEND,
            start_command=NODE_START_COMMAND,
            entry_point=find_main_file(evidence.project_dir, evidence.manifest)
        )
    return build


def _svelte(evidence: ProjectEvidence) -> DeploymentProfile:
    if evidence.has_dep('@sveltejs/kit'):
        return _integrated("SvelteKit")(evidence)
    return _static("Svelte", "public")(evidence)


def _react(evidence: ProjectEvidence) -> DeploymentProfile:
    if evidence.has_dep('react-scripts'):
        return _static("Create React App", "build")(evidence)
    return _static("React (Vite/Custom)", "dist")(evidence)


def _unknown(evidence: ProjectEvidence) -> DeploymentProfile:
    if evidence.has_bundler():
        return _static("Unknown Frontend Framework", "dist")(evidence)
    return _backend("Unknown Node.js Application")(evidence)


FRAMEWORK_RULES: List[FrameworkRule] = [
    FrameworkRule(
        "next",
        lambda e: e.has_dep('next') or e.has_file('next.config.js', 'next.config.mjs'),
        _integrated("Next.js", port=FIXED_FULLSTACK_PORT)
    ),
    FrameworkRule(
        "nuxt",
        lambda e: e.has_dep('nuxt') or e.has_file('nuxt.config.js', 'nuxt.config.ts'),
        _integrated("Nuxt.js", port=FIXED_FULLSTACK_PORT)
    ),
    FrameworkRule(
        "gatsby",
        lambda e: e.has_dep('gatsby') or e.has_file('gatsby-config.js'),
        _static("Gatsby", "public")
    ),
    FrameworkRule(
        "angular",
        lambda e: e.has_dep('@angular/core') or e.has_file('angular.json'),
        _static("Angular", "dist")
    ),
    FrameworkRule(
        "vue",
        lambda e: e.has_dep('vue') or e.has_file('vite.config.js', 'vue.config.js'),
        _static("Vue.js", "dist")
    ),
    FrameworkRule(
        "svelte",
        lambda e: e.has_dep('svelte', '@sveltejs/kit'),
        _svelte
    ),
    FrameworkRule(
        "react",
        lambda e: e.has_dep('react'),
        _react
    ),
    FrameworkRule(
        "node",
        lambda e: e.has_dep('express') or find_main_file(e.project_dir, e.manifest) is not None,
        _backend("Node.js/Express")
    ),
    FrameworkRule(
        "unknown",
        lambda e: True,
        _unknown
    ),
]


class FrameworkDetector:
    """Maps a project directory to its DeploymentProfile"""

    def __init__(self, rules: Optional[List[FrameworkRule]] = None):
        self.rules = rules if rules is not None else FRAMEWORK_RULES

    def load_manifest(self, project_dir: Path) -> Dict:
        manifest_path = project_dir / MANIFEST_FILE
        if not manifest_path.is_file():
            print_debug(f"Current directory contents: {', '.join(list_directory(project_dir))}")
            raise ClassificationError(
                f"No {MANIFEST_FILE} found in {project_dir}",
                hints=[
                    "Ensure you're in your project's root directory",
                    f"Try: ls -la | grep {MANIFEST_FILE}",
                ]
            )
        try:
            manifest = load_json_file(manifest_path)
        except ValueError as e:
            raise ClassificationError(str(e), hints=[f"Check {MANIFEST_FILE} syntax"])
        if not isinstance(manifest, dict):
            raise ClassificationError(f"{MANIFEST_FILE} must contain a JSON object")
        return manifest

    def match(self, evidence: ProjectEvidence) -> FrameworkRule:
        for rule in self.rules:
            if rule.matches(evidence):
                return rule
        raise ClassificationError("No framework rule matched")

    def detect(self, project_dir: Path) -> DeploymentProfile:
        """Detect the framework in project_dir and return its profile"""
        print_step("Detecting JavaScript framework...")
        project_dir = Path(project_dir)
        log_to_file(f"Starting framework detection in directory: {project_dir}")

        manifest = self.load_manifest(project_dir)
        evidence = ProjectEvidence.from_manifest(project_dir, manifest)

        rule = self.match(evidence)
        profile = rule.profile(evidence)
        print_debug(f"Matched rule: {rule.name}")

        print_success(f"Framework detected: {profile.framework_name}")
        print_info(f"Framework type: {profile.category.value}")
        print_info(f"Build command: {' '.join(profile.build_command) or 'none'}")
        print_info(f"Build directory: {profile.artifact_dir or 'none'}")
        print_info(f"Serve static files: {str(profile.serves_static).lower()}")
        log_to_file(
            f"FRAMEWORK DETECTION: Framework={profile.framework_name}, Type={profile.category.value}, "
            f"BuildCmd={' '.join(profile.build_command)}, BuildDir={profile.artifact_dir or ''}, "
            f"ServeStatic={profile.serves_static}"
        )
        return profile
