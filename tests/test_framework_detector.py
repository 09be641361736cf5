import pytest

from desuru.core.exceptions import ClassificationError
from desuru.core.framework_detector import FRAMEWORK_RULES, FrameworkDetector, find_main_file
from desuru.core.models import Category, INTEGRATED_SERVER


def detect(make_project, manifest, files=()):
    project = make_project(manifest, files=files)
    return FrameworkDetector().detect(project)


@pytest.mark.parametrize("dependencies, framework, category, artifact_dir", [
    ({"next": "14.0.0", "react": "18.2.0"}, "Next.js", Category.FULLSTACK, None),
    ({"nuxt": "3.8.0", "vue": "3.3.0"}, "Nuxt.js", Category.FULLSTACK, None),
    ({"gatsby": "5.0.0", "react": "18.2.0"}, "Gatsby", Category.FRONTEND, "public"),
    ({"@angular/core": "17.0.0"}, "Angular", Category.FRONTEND, "dist"),
    ({"vue": "3.3.0"}, "Vue.js", Category.FRONTEND, "dist"),
    ({"@sveltejs/kit": "2.0.0", "svelte": "4.0.0"}, "SvelteKit", Category.FULLSTACK, None),
    ({"svelte": "4.0.0"}, "Svelte", Category.FRONTEND, "public"),
    ({"react": "18.2.0", "react-scripts": "5.0.1"}, "Create React App", Category.FRONTEND, "build"),
    ({"react": "18.2.0", "vite": "5.0.0"}, "React (Vite/Custom)", Category.FRONTEND, "dist"),
    ({"express": "4.18.2"}, "Node.js/Express", Category.BACKEND, None),
    ({"webpack": "5.0.0"}, "Unknown Frontend Framework", Category.FRONTEND, "dist"),
    ({}, "Unknown Node.js Application", Category.BACKEND, None),
])
def test_framework_table(make_project, dependencies, framework, category, artifact_dir):
    profile = detect(make_project, {"name": "app", "dependencies": dependencies})

    assert profile.framework_name == framework
    assert profile.category == category
    assert profile.artifact_dir == artifact_dir
    assert profile.serves_static == (category == Category.FRONTEND)


def test_dev_dependencies_count_as_evidence(make_project):
    profile = detect(make_project, {"devDependencies": {"@angular/core": "17.0.0"}})
    assert profile.framework_name == "Angular"


@pytest.mark.parametrize("marker, framework", [
    ("next.config.js", "Next.js"),
    ("nuxt.config.ts", "Nuxt.js"),
    ("gatsby-config.js", "Gatsby"),
    ("angular.json", "Angular"),
    ("vite.config.js", "Vue.js"),
    ("vue.config.js", "Vue.js"),
])
def test_marker_files_without_dependencies(make_project, marker, framework):
    profile = detect(make_project, {"name": "app"}, files=[marker])
    assert profile.framework_name == framework


def test_meta_framework_wins_over_ui_library(make_project):
    profile = detect(make_project, {"dependencies": {"react": "18.2.0", "next": "14.0.0"}})
    assert profile.framework_name == "Next.js"


def test_next_profile_uses_integrated_server_on_fixed_port(make_project):
    profile = detect(make_project, {"dependencies": {"next": "14.0.0"}})

    assert profile.build_command == ("npm", "run", "build")
    assert profile.start_command == ("npm", "start")
    assert profile.entry_point == INTEGRATED_SERVER
    assert profile.uses_integrated_server
    assert profile.port == 3000
    assert not profile.serves_static


def test_sveltekit_has_no_fixed_port(make_project):
    profile = detect(make_project, {"dependencies": {"@sveltejs/kit": "2.0.0"}})
    assert profile.uses_integrated_server
    assert profile.port is None


def test_express_entry_point_is_discovered(make_project):
    profile = detect(make_project, {"dependencies": {"express": "4.18.2"}}, files=["server.js"])

    assert profile.entry_point == "server.js"
    assert profile.start_command == ("node",)
    assert not profile.has_build


def test_express_without_entry_file_is_still_backend(make_project):
    profile = detect(make_project, {"dependencies": {"express": "4.18.2"}})
    assert profile.framework_name == "Node.js/Express"
    assert profile.entry_point is None


def test_plain_project_with_entry_file_is_node(make_project):
    profile = detect(make_project, {"name": "worker"}, files=["index.js"])
    assert profile.framework_name == "Node.js/Express"
    assert profile.entry_point == "index.js"


def test_bundler_in_build_script_is_frontend(make_project):
    profile = detect(make_project, {"scripts": {"build": "parcel build index.html"}})
    assert profile.framework_name == "Unknown Frontend Framework"


def test_missing_manifest_raises(make_project):
    project = make_project()
    with pytest.raises(ClassificationError) as exc_info:
        FrameworkDetector().detect(project)
    assert "package.json" in str(exc_info.value)
    assert exc_info.value.hints


def test_invalid_manifest_raises(make_project):
    project = make_project('{"name": "broken",')
    with pytest.raises(ClassificationError):
        FrameworkDetector().detect(project)


def test_rule_order():
    assert [rule.name for rule in FRAMEWORK_RULES] == [
        "next", "nuxt", "gatsby", "angular", "vue", "svelte", "react", "node", "unknown"
    ]


class TestFindMainFile:

    def test_candidate_order(self, make_project):
        project = make_project({}, files=["server.js", "index.js"])
        assert find_main_file(project, {}) == "index.js"

    def test_main_field_wins(self, make_project):
        project = make_project({}, files=["index.js", "lib/start.js"])
        assert find_main_file(project, {"main": "lib/start.js"}) == "lib/start.js"

    def test_missing_main_field_file_falls_through(self, make_project):
        project = make_project({}, files=["app.js"])
        assert find_main_file(project, {"main": "dist/missing.js"}) == "app.js"

    def test_src_candidates(self, make_project):
        project = make_project({}, files=["src/server.js"])
        assert find_main_file(project) == "src/server.js"

    def test_nothing_found(self, make_project):
        project = make_project({})
        assert find_main_file(project, {}) is None
