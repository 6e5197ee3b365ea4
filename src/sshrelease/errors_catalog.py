"""Actionable error catalog for sshrelease."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_config": {
        "what": "Missing required setting: {key}",
        "next": "Provide `{key}` in the config file or pass `--{option}` on the command line.",
    },
    "connect_failed": {
        "what": "Could not connect to {hosts}.",
        "next": "Check that the hosts are reachable and that your SSH agent holds a valid key.",
    },
    "prepare_failed": {
        "what": "Could not create release directory {path} on every host.",
        "next": "Check that the deploy user can write to the target directory.",
    },
    "source_not_found": {
        "what": "Build directory not found: {path}",
        "next": "Build the project first or point `source_dir` to the build output.",
    },
    "upload_failed": {
        "what": "Upload failed on {hosts}.",
        "next": "Fix the failing hosts and deploy again; the incomplete release is never linked.",
    },
    "release_missing": {
        "what": "Release {path} is missing on {host}.",
        "next": "Run the deployment again so the release is uploaded before activation.",
    },
    "activation_failed": {
        "what": "Activation failed on {hosts}.",
        "next": "Inspect the symlink and permission errors above, then deploy again.",
    },
    "prune_failed": {
        "what": "Could not prune old releases on {hosts}.",
        "next": "The new release is live. Old releases will be pruned on the next deployment.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
