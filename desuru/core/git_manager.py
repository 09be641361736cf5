from pathlib import Path
from typing import Dict, Optional

from git import Repo
from git.exc import GitError, InvalidGitRepositoryError, NoSuchPathError

from .utils import print_info, print_warning, print_debug


class GitManager:
    """Reads repository details of the project being deployed"""

    def describe(self, project_dir: Path) -> Optional[Dict[str, str]]:
        """Name, branch and short commit of project_dir, or None outside a repository"""
        try:
            repo = Repo(str(project_dir))
        except (InvalidGitRepositoryError, NoSuchPathError):
            print_warning("Not in a git repository - make sure you're in your project directory")
            return None

        info = {'name': Path(repo.working_tree_dir or project_dir).name}
        try:
            info['branch'] = 'detached' if repo.head.is_detached else repo.active_branch.name
            info['commit'] = repo.head.commit.hexsha[:8]
        except (GitError, ValueError, TypeError) as e:
            # Fresh repositories have no commits yet
            print_debug(f"Could not read git HEAD: {e}")
            info.setdefault('branch', 'unknown')
            info['commit'] = 'none'

        try:
            dirty = repo.is_dirty(untracked_files=False)
        except GitError:
            dirty = False
        info['dirty'] = 'yes' if dirty else 'no'
        print_info(f"Git repository detected: {info['name']} ({info['branch']} @ {info['commit']})")
        if info['dirty'] == 'yes':
            print_warning("Working tree has uncommitted changes")
        return info
