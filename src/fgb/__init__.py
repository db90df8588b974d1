"""Manage Git branches and worktrees with fzf.

Features:
- List local and remote branches in aligned, terminal-sized columns
- Switch to branches or jump to (and create) worktrees from a fuzzy picker
- Safe branch deletion with confirmation for unmerged branches
- Worktree deletion with confirmation for modified or untracked files
- Extended delete: remove a branch together with its local/remote counterpart
"""

__version__ = "0.3.0"
