"""GWT guide 与 shell-init 命令实现"""

import click


GUIDE_TEXT = """\
Git Worktree Management

Work on multiple branches simultaneously without stashing changes.

COMMANDS:
  gwt init [branch]           Convert existing repo to worktree structure
  gwt clone <url> [dir]       Clone repo with worktree structure
  gwt add <branch> [base]     Create new worktree
  gwt rm <branch> [-d]        Remove worktree (optionally delete branch)
  gwt list                    List all worktrees
  gwt cd <branch>             Print path to worktree (use with cd)
  gwt guide                   Show this guide

WORKFLOW EXAMPLE:
  # One-time setup
  cd ~/projects/myrepo
  gwt init                    # Convert to worktree structure

  # Daily workflow
  gwt add feature-auth        # Create feature branch worktree
  cd ../feature-auth          # Work on feature

  gwt add pr-review main      # Need to review a PR? Create another worktree
  cd ../pr-review             # Review code

  cd ../feature-auth          # Back to your work (no stashing needed!)

  gwt rm pr-review            # Done with review

DIRECTORY STRUCTURE:
  myrepo/
  ├── .bare/                  # Bare git repository
  ├── main/                   # Main branch worktree
  ├── feature-auth/           # Feature worktree
  └── pr-review/              # PR review worktree

For more info: https://git-scm.com/docs/git-worktree
"""

# 子进程无法改变父 shell 的目录，因此由 shell 函数执行 cd
SHELL_FUNCTION = """\
# gwt shell integration ({shell})
# Add to your ~/.{shell}rc:  eval "$(gwt shell-init {shell})"
gcd() {{
    local target
    target="$(command gwt cd "$1")" || return 1
    cd "$target"
}}
"""


@click.command(name="guide")
def guide_cmd() -> None:
    """显示工作流说明与目录结构"""
    click.echo(GUIDE_TEXT, nl=False)


@click.command(name="shell-init")
@click.argument("shell", type=click.Choice(["zsh", "bash"]), default="zsh")
def shell_init_cmd(shell: str) -> None:
    """输出 gcd shell 函数（cd 到指定 worktree）"""
    click.echo(SHELL_FUNCTION.format(shell=shell), nl=False)
