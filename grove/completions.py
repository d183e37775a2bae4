"""
Shell completion scripts for the grove CLI.

Each constant contains a complete shell completion script
that can be eval'd or sourced by the user's shell.
"""

BASH_COMPLETION = r"""
_grove_completions() {
    local cur prev commands global_flags
    COMPREPLY=()
    cur="${COMP_WORDS[COMP_CWORD]}"
    prev="${COMP_WORDS[COMP_CWORD-1]}"

    commands="init status ls cat run open touch mkdir edit rm stage unstage stage-all commit log branches branch switch ai ask snippet completion ci st co"
    global_flags="--json -j --path -C --verbose -v --quiet -q"

    case "${prev}" in
        branch)
            COMPREPLY=( $(compgen -W "create delete" -- "${cur}") )
            return 0
            ;;
        snippet)
            COMPREPLY=( $(compgen -W "list add show remove" -- "${cur}") )
            return 0
            ;;
        ai)
            COMPREPLY=( $(compgen -W "explain refactor debug docs" -- "${cur}") )
            return 0
            ;;
        --template)
            COMPREPLY=( $(compgen -W "sample empty" -- "${cur}") )
            return 0
            ;;
        completion)
            COMPREPLY=( $(compgen -W "bash zsh fish" -- "${cur}") )
            return 0
            ;;
        grove)
            COMPREPLY=( $(compgen -W "${commands} ${global_flags}" -- "${cur}") )
            return 0
            ;;
    esac

    if [[ "${cur}" == -* ]]; then
        COMPREPLY=( $(compgen -W "${global_flags}" -- "${cur}") )
    else
        COMPREPLY=( $(compgen -W "${commands}" -- "${cur}") )
    fi
}
complete -F _grove_completions grove
"""

ZSH_COMPLETION = r"""
#compdef grove

_grove() {
    local -a commands global_flags branch_commands snippet_commands ai_features shell_types

    commands=(
        'init:Initialize a new workspace'
        'status:Show branch, staged and unstaged files'
        'ls:List the current tree'
        'cat:Print a file'
        'run:Simulate running a file'
        'open:Open a file'
        'touch:Create a file'
        'mkdir:Create a folder'
        'edit:Replace file content'
        'rm:Delete a file or folder'
        'stage:Stage files'
        'unstage:Unstage files'
        'stage-all:Stage every changed file'
        'commit:Commit staged files'
        'log:Show commit log'
        'branches:List branches'
        'branch:Branch management'
        'switch:Switch branch'
        'ai:Run an AI action on a file'
        'ask:Ask a question about the open file'
        'snippet:Snippet management'
        'completion:Generate shell completion script'
        'ci:Alias for commit'
        'st:Alias for status'
        'co:Alias for switch'
    )

    global_flags=(
        '--json[JSON output]'
        '-j[JSON output]'
        '--path[Workspace path]:path:_files -/'
        '-C[Workspace path]:path:_files -/'
        '--verbose[Verbose output]'
        '-v[Verbose output]'
        '--quiet[Quiet output]'
        '-q[Quiet output]'
    )

    branch_commands=(
        'create:Create a branch from the current one'
        'delete:Delete a branch'
    )

    snippet_commands=(
        'list:List snippets'
        'add:Save a snippet'
        'show:Print a snippet'
        'remove:Delete a snippet'
    )

    ai_features=(explain refactor debug docs)
    shell_types=(bash zsh fish)

    _arguments -C \
        '1:command:->command' \
        '*::arg:->args'

    case "$state" in
        command)
            _describe 'command' commands
            _describe 'flag' global_flags
            ;;
        args)
            case "${words[1]}" in
                branch)
                    _describe 'branch command' branch_commands
                    ;;
                snippet)
                    _describe 'snippet command' snippet_commands
                    ;;
                ai)
                    _describe 'feature' ai_features
                    ;;
                completion)
                    _describe 'shell' shell_types
                    ;;
            esac
            ;;
    esac
}

compdef _grove grove
"""

FISH_COMPLETION = r"""
# Disable file completions by default
complete -c grove -f

# Global flags
complete -c grove -l json -s j -d 'JSON output'
complete -c grove -l path -s C -d 'Workspace path' -r -F
complete -c grove -l verbose -s v -d 'Verbose output'
complete -c grove -l quiet -s q -d 'Quiet output'

# Subcommands
complete -c grove -n '__fish_use_subcommand' -a init -d 'Initialize a new workspace'
complete -c grove -n '__fish_use_subcommand' -a status -d 'Show branch, staged and unstaged files'
complete -c grove -n '__fish_use_subcommand' -a ls -d 'List the current tree'
complete -c grove -n '__fish_use_subcommand' -a cat -d 'Print a file'
complete -c grove -n '__fish_use_subcommand' -a run -d 'Simulate running a file'
complete -c grove -n '__fish_use_subcommand' -a open -d 'Open a file'
complete -c grove -n '__fish_use_subcommand' -a touch -d 'Create a file'
complete -c grove -n '__fish_use_subcommand' -a mkdir -d 'Create a folder'
complete -c grove -n '__fish_use_subcommand' -a edit -d 'Replace file content'
complete -c grove -n '__fish_use_subcommand' -a rm -d 'Delete a file or folder'
complete -c grove -n '__fish_use_subcommand' -a stage -d 'Stage files'
complete -c grove -n '__fish_use_subcommand' -a unstage -d 'Unstage files'
complete -c grove -n '__fish_use_subcommand' -a stage-all -d 'Stage every changed file'
complete -c grove -n '__fish_use_subcommand' -a commit -d 'Commit staged files'
complete -c grove -n '__fish_use_subcommand' -a log -d 'Show commit log'
complete -c grove -n '__fish_use_subcommand' -a branches -d 'List branches'
complete -c grove -n '__fish_use_subcommand' -a branch -d 'Branch management'
complete -c grove -n '__fish_use_subcommand' -a switch -d 'Switch branch'
complete -c grove -n '__fish_use_subcommand' -a ai -d 'Run an AI action on a file'
complete -c grove -n '__fish_use_subcommand' -a ask -d 'Ask about the open file'
complete -c grove -n '__fish_use_subcommand' -a snippet -d 'Snippet management'
complete -c grove -n '__fish_use_subcommand' -a completion -d 'Generate shell completion script'
complete -c grove -n '__fish_use_subcommand' -a ci -d 'Alias for commit'
complete -c grove -n '__fish_use_subcommand' -a st -d 'Alias for status'
complete -c grove -n '__fish_use_subcommand' -a co -d 'Alias for switch'

# branch sub-subcommands
complete -c grove -n '__fish_seen_subcommand_from branch' -a create -d 'Create a branch'
complete -c grove -n '__fish_seen_subcommand_from branch' -a delete -d 'Delete a branch'

# snippet sub-subcommands
complete -c grove -n '__fish_seen_subcommand_from snippet' -a list -d 'List snippets'
complete -c grove -n '__fish_seen_subcommand_from snippet' -a add -d 'Save a snippet'
complete -c grove -n '__fish_seen_subcommand_from snippet' -a show -d 'Print a snippet'
complete -c grove -n '__fish_seen_subcommand_from snippet' -a remove -d 'Delete a snippet'

# ai features
complete -c grove -n '__fish_seen_subcommand_from ai' -a 'explain refactor debug docs' -d 'Feature'

# completion shell types
complete -c grove -n '__fish_seen_subcommand_from completion' -a 'bash zsh fish' -d 'Shell type'
"""
