"""Git and GitHub operations: previous revisions, commits and pull requests."""
import logging
import os
import subprocess
import time
from typing import Dict, List, Optional, Sequence

import requests

from locale_sync.exceptions import VersionControlError

logger = logging.getLogger(__name__)

GITHUB_API_URL = 'https://api.github.com'
BOT_USER_NAME = 'locale-sync bot'
BOT_USER_EMAIL = 'locale-sync-bot@users.noreply.github.com'


def _run_git(args: Sequence[str], cwd: Optional[str] = None, check: bool = True) -> subprocess.CompletedProcess:
    return subprocess.run(
        ['git', *args],
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding='utf-8',
        check=check
    )


def get_previous_file_content(file_path: str) -> Optional[str]:
    """
    Return the content of ``file_path`` at the revision before HEAD.

    Returns:
        The file content, or None when git is unavailable, the file has no
        prior revision, the revision is not valid UTF-8, or it is empty.
    """
    directory = os.path.dirname(os.path.abspath(file_path))
    filename = os.path.basename(file_path)
    try:
        result = _run_git(['show', f'HEAD~1:./{filename}'], cwd=directory, check=False)
    except OSError as e:
        logger.info("Could not run git to fetch the previous revision of '%s': %s", file_path, e)
        return None
    except UnicodeDecodeError as e:
        logger.info("Previous revision of '%s' is not valid UTF-8 (%s); ignoring it", file_path, e)
        return None

    if result.returncode != 0:
        logger.debug("git show failed for '%s': %s", file_path, result.stderr.strip())
        return None
    return result.stdout or None


def _configure_user() -> None:
    _run_git(['config', 'user.name', BOT_USER_NAME])
    _run_git(['config', 'user.email', BOT_USER_EMAIL])


def commit_changes(files_changed: List[str], commit_message: str) -> bool:
    """
    Stage, commit and push the translated files on the current branch.

    Returns:
        True if a commit was pushed, False if there was nothing to commit.

    Raises:
        VersionControlError: If a git command fails.
    """
    try:
        _configure_user()
        logger.info("Adding %d translated file(s)", len(files_changed))
        _run_git(['add', *files_changed])

        staged = _run_git(['diff', '--cached', '--quiet'], check=False)
        if staged.returncode == 0:
            logger.info("No changes to commit")
            return False

        logger.info("Committing: %s", commit_message)
        _run_git(['commit', '-m', commit_message])
        logger.info("Pushing changes")
        _run_git(['push'])
    except subprocess.CalledProcessError as git_exc:
        raise VersionControlError(f"Error running git command: {git_exc.stderr}") from git_exc
    return True


def group_files_by_language(written_files: Sequence[tuple]) -> Dict[str, List[str]]:
    """Group (language, path) pairs by language, keeping first-seen order."""
    grouped: Dict[str, List[str]] = {}
    for language, file_path in written_files:
        grouped.setdefault(language, []).append(file_path)
    return grouped


def build_pull_request_body(source_files: Sequence[str], written_files: Sequence[tuple],
                            verification_summary: str) -> str:
    files_section = '\n\n'.join(
        f"**{language}:**\n" + '\n'.join(f"- `{path}`" for path in paths)
        for language, paths in group_files_by_language(written_files).items()
    )
    sources = '\n'.join(f"- `{path}`" for path in source_files)
    return (
        "## Auto-generated translations\n\n"
        f"### Source files translated\n{sources}\n\n"
        f"### Files created/updated\n\n{files_section}\n\n"
        f"{verification_summary}\n"
    )


class GitHubAPIClient:
    """Opens pull requests through the GitHub REST API."""

    def __init__(self, token: str, repository: str, timeout: float = 30):
        self.token = token
        self.repository = repository
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/vnd.github.v3+json',
            'Content-Type': 'application/json',
        }

    def create_pull_request(self, title: str, head: str, base: str, body: str) -> Dict:
        url = f"{GITHUB_API_URL}/repos/{self.repository}/pulls"
        try:
            response = requests.post(
                url,
                headers=self._get_headers(),
                json={'title': title, 'head': head, 'base': base, 'body': body},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise VersionControlError(f"Failed to create pull request: {e}") from e

        if response.status_code != 201:
            try:
                message = response.json().get('message', f"HTTP {response.status_code}")
            except ValueError:
                message = f"HTTP {response.status_code}"
            raise VersionControlError(f"Failed to create pull request: {message}")
        return response.json()


def _base_branch() -> str:
    base = os.environ.get('GITHUB_BASE_REF') or os.environ.get('GITHUB_REF', '')
    return base.replace('refs/heads/', '') or 'main'


def create_pull_request(
    files_changed: List[str],
    branch_name: str,
    commit_message: str,
    token: str,
    body: str
) -> int:
    """
    Commit the translated files on a fresh branch and open a pull request.

    Returns:
        The pull request number.

    Raises:
        VersionControlError: If a git command or the GitHub API call fails.
    """
    repository = os.environ.get('GITHUB_REPOSITORY')
    if not repository:
        raise VersionControlError("GITHUB_REPOSITORY is not set; cannot open a pull request")

    unique_branch_name = f"{branch_name}-{int(time.time() * 1000)}"
    base = _base_branch()
    logger.info("Creating branch: %s", unique_branch_name)

    try:
        _run_git(['checkout', '-b', unique_branch_name])
        _configure_user()
        _run_git(['add', *files_changed])
        _run_git(['commit', '-m', commit_message])
        _run_git(['push', '-u', 'origin', unique_branch_name])
    except subprocess.CalledProcessError as git_exc:
        raise VersionControlError(f"Error running git command: {git_exc.stderr}") from git_exc

    logger.info("Creating pull request")
    pull_request = GitHubAPIClient(token, repository).create_pull_request(
        title='Update translations',
        head=unique_branch_name,
        base=base,
        body=body
    )
    logger.info("Pull request created: %s", pull_request.get('html_url'))
    return pull_request.get('number')
