"""Shell completion scripts and a man page generated from the argument parser"""

import argparse
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from slashmail import __version__

SHELLS = ("bash", "zsh", "fish")


## Parser Introspection

@dataclass
class OptionSpec:
    """One command-line option as seen by the generators."""

    flags: List[str]
    help: str = ""
    takes_value: bool = False
    choices: List[str] = field(default_factory=list)
    is_path: bool = False
    metavar: str = ""

    @property
    def long_flag(self) -> Optional[str]:
        return next((flag for flag in self.flags if flag.startswith("--")), None)

    @property
    def short_flag(self) -> Optional[str]:
        return next((flag for flag in self.flags if not flag.startswith("--")), None)


@dataclass
class CommandSpec:
    name: str
    help: str = ""
    description: str = ""
    options: List[OptionSpec] = field(default_factory=list)
    positionals: List[OptionSpec] = field(default_factory=list)


def _help_text(action: argparse.Action) -> str:
    if not action.help or action.help == argparse.SUPPRESS:
        return ""
    return action.help.replace("%(default)s", str(action.default)).replace("%%", "%")


def _option_spec(action: argparse.Action) -> OptionSpec:
    takes_value = action.nargs != 0
    return OptionSpec(
        flags=list(action.option_strings) or [action.dest],
        help=_help_text(action),
        takes_value=takes_value,
        choices=[str(choice) for choice in action.choices or []],
        is_path=action.type is Path,
        metavar=str(action.metavar or action.dest).upper() if takes_value else "",
    )


def _subparsers_action(parser: argparse.ArgumentParser) -> Optional[argparse._SubParsersAction]:
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            return action
    return None


def _split_actions(parser: argparse.ArgumentParser):
    options, positionals = [], []
    for action in parser._actions:
        if isinstance(action, (argparse._SubParsersAction, argparse._VersionAction)):
            continue
        if action.option_strings:
            options.append(_option_spec(action))
        else:
            positionals.append(_option_spec(action))
    return options, positionals


def global_options(parser: argparse.ArgumentParser) -> List[OptionSpec]:
    """Options accepted before the command name, ``--version`` included."""

    options = _split_actions(parser)[0]
    for action in parser._actions:
        if isinstance(action, argparse._VersionAction):
            options.append(OptionSpec(flags=list(action.option_strings), help=_help_text(action)))
    return options


def all_options(parser: argparse.ArgumentParser) -> List[OptionSpec]:
    """Every distinct option of the parser and its subcommands."""

    seen = set()
    options = []
    for option in global_options(parser) + [opt for command in command_specs(parser) for opt in command.options]:
        key = tuple(option.flags)
        if key not in seen:
            seen.add(key)
            options.append(option)
    return options


def command_specs(parser: argparse.ArgumentParser) -> List[CommandSpec]:
    """Describe every subcommand of ``parser`` in registration order."""

    subparsers = _subparsers_action(parser)
    if subparsers is None:
        return []

    helps = {choice.dest: choice.help or "" for choice in subparsers._choices_actions}
    commands = []
    for name, subparser in subparsers.choices.items():
        options, positionals = _split_actions(subparser)
        commands.append(CommandSpec(
            name=name,
            help=helps.get(name, ""),
            description=subparser.description or "",
            options=options,
            positionals=positionals,
        ))
    return commands


## Bash

def _bash_script(parser: argparse.ArgumentParser) -> str:
    prog = parser.prog
    commands = command_specs(parser)
    global_flags = " ".join(flag for option in global_options(parser) for flag in option.flags)
    names = " ".join(command.name for command in commands)

    options = all_options(parser)
    value_flags = [flag for option in options if option.takes_value for flag in option.flags]

    lines = [
        f"# bash completion for {prog}",
        f"_{prog}() {{",
        '    local cur prev cmd word',
        '    cur="${COMP_WORDS[COMP_CWORD]}"',
        '    prev="${COMP_WORDS[COMP_CWORD-1]}"',
        '    cmd=""',
        '    for word in "${COMP_WORDS[@]:1:COMP_CWORD-1}"; do',
        '        case "$word" in',
        f'            {"|".join(command.name for command in commands)}) cmd="$word"; break ;;',
        '        esac',
        '    done',
        '',
        '    case "$prev" in',
    ]

    for option in options:
        if option.choices:
            lines.append(f'        {"|".join(option.flags)}) COMPREPLY=($(compgen -W "{" ".join(option.choices)}" -- "$cur")); return ;;')
        elif option.is_path:
            lines.append(f'        {"|".join(option.flags)}) COMPREPLY=($(compgen -f -- "$cur")); return ;;')
    if value_flags:
        lines.append(f'        {"|".join(value_flags)}) return ;;')
    lines.append('    esac')
    lines.append('')
    lines.append('    case "$cmd" in')

    for command in commands:
        flags = " ".join(flag for option in command.options for flag in option.flags)
        choices = " ".join(choice for positional in command.positionals for choice in positional.choices)
        words = " ".join(part for part in (flags, choices) if part)
        lines.append(f'        {command.name}) COMPREPLY=($(compgen -W "{words}" -- "$cur")) ;;')

    lines += [
        f'        *) COMPREPLY=($(compgen -W "{global_flags} {names}" -- "$cur")) ;;',
        '    esac',
        '}',
        f'complete -F _{prog} {prog}',
    ]
    return "\n".join(lines) + "\n"


## Zsh

def _zsh_escape(text: str) -> str:
    text = text.replace("\\", "").replace("'", "'\\''")
    return re.sub(r"([\[\]:])", r"\\\1", text)


def _zsh_option(option: OptionSpec) -> str:
    description = _zsh_escape(option.help)
    if option.takes_value:
        if option.choices:
            action = f":{option.metavar.lower()}:({' '.join(option.choices)})"
        elif option.is_path:
            action = f":{option.metavar.lower()}:_files"
        else:
            action = f":{option.metavar.lower()}:"
    else:
        action = ""

    if len(option.flags) > 1:
        exclusive = " ".join(option.flags)
        return f"'({exclusive})'{{{','.join(option.flags)}}}'[{description}]{action}'"
    return f"'{option.flags[0]}[{description}]{action}'"


def _zsh_script(parser: argparse.ArgumentParser) -> str:
    prog = parser.prog
    commands = command_specs(parser)

    lines = [
        f"#compdef {prog}",
        "",
        f"_{prog}() {{",
        "    local -a commands",
        "    commands=(",
    ]
    for command in commands:
        lines.append(f"        '{command.name}:{_zsh_escape(command.help)}'")
    lines += [
        "    )",
        "",
        "    local cmd word",
        "    for word in ${words[2,CURRENT-1]}; do",
        "        if (( ${commands[(I)${word}:*]} )); then",
        "            cmd=$word",
        "            break",
        "        fi",
        "    done",
        "",
        '    case "$cmd" in',
    ]

    for command in commands:
        specs = [_zsh_option(option) for option in command.options]
        for positional in command.positionals:
            specs.append(f"':{positional.flags[0]}:({' '.join(positional.choices)})'")
        lines.append(f"        {command.name})")
        lines.append(f"            _arguments -s {' '.join(specs)}")
        lines.append("            ;;")

    global_specs = [_zsh_option(option) for option in global_options(parser)]
    lines += [
        "        *)",
        "            local state",
        f"            _arguments -s {' '.join(global_specs)} '1: :->command' '*:: :->args'",
        "            [[ $state == command ]] && _describe 'command' commands",
        "            ;;",
        "    esac",
        "}",
        "",
        f'_{prog} "$@"',
    ]
    return "\n".join(lines) + "\n"


## Fish

def _fish_quote(text: str) -> str:
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _fish_option(prog: str, condition: str, option: OptionSpec) -> str:
    parts = [f"complete -c {prog} -n {_fish_quote(condition)}"]
    if option.long_flag:
        parts.append(f"-l {option.long_flag[2:]}")
    if option.short_flag:
        parts.append(f"-s {option.short_flag[1:]}")
    if option.takes_value:
        parts.append("-r")
        if option.choices:
            parts.append(f"-f -a {_fish_quote(' '.join(option.choices))}")
        elif option.is_path:
            parts.append("-F")
    if option.help:
        parts.append(f"-d {_fish_quote(option.help)}")
    return " ".join(parts)


def _fish_script(parser: argparse.ArgumentParser) -> str:
    prog = parser.prog
    commands = command_specs(parser)
    names = " ".join(command.name for command in commands)
    no_command = f"not __fish_seen_subcommand_from {names}"

    lines = [f"# fish completion for {prog}", f"complete -c {prog} -f"]
    for command in commands:
        lines.append(
            f"complete -c {prog} -n {_fish_quote(no_command)} -a {command.name} -d {_fish_quote(command.help)}"
        )
    for option in global_options(parser):
        lines.append(_fish_option(prog, no_command, option))

    for command in commands:
        condition = f"__fish_seen_subcommand_from {command.name}"
        for option in command.options:
            lines.append(_fish_option(prog, condition, option))
        for positional in command.positionals:
            lines.append(
                f"complete -c {prog} -n {_fish_quote(condition)} -a {_fish_quote(' '.join(positional.choices))}"
            )
    return "\n".join(lines) + "\n"


_GENERATORS: Dict[str, Callable[[argparse.ArgumentParser], str]] = {
    "bash": _bash_script,
    "zsh": _zsh_script,
    "fish": _fish_script,
}


def generate_completion(parser: argparse.ArgumentParser, shell: str) -> str:
    """Return a completion script for ``shell``.

    Raises:
        ValueError: If ``shell`` is not one of ``SHELLS``
    """
    try:
        return _GENERATORS[shell](parser)
    except KeyError:
        raise ValueError(f"Unsupported shell: {shell}") from None


## Man Page

def _roff(text: str) -> str:
    text = text.replace("\\", "\\e").replace("-", "\\-")
    if text.startswith((".", "'")):
        text = "\\&" + text
    return text


def _roff_option(option: OptionSpec) -> List[str]:
    flags = ", ".join(f"\\fB{_roff(flag)}\\fR" for flag in option.flags)
    if option.takes_value:
        value = "{" + ",".join(option.choices) + "}" if option.choices else option.metavar
        flags += f" \\fI{_roff(value)}\\fR"
    return [".TP", flags, _roff(option.help)]


def generate_manpage(parser: argparse.ArgumentParser, environment: Optional[Dict[str, str]] = None) -> str:
    """Render a section 1 man page in roff for ``parser``."""

    prog = parser.prog
    global_flags = {flag for option in global_options(parser) for flag in option.flags}

    lines = [
        f'.TH {prog.upper()} 1 "" "{prog} {__version__}" "User Commands"',
        ".SH NAME",
        f"{prog} \\- {_roff(parser.description or '')}",
        ".SH SYNOPSIS",
        f".B {prog}",
        "[\\fIOPTIONS\\fR] \\fICOMMAND\\fR [\\fICOMMAND OPTIONS\\fR]",
        ".SH OPTIONS",
    ]
    for option in global_options(parser):
        lines += _roff_option(option)

    lines.append(".SH COMMANDS")
    for command in command_specs(parser):
        lines.append(f".SS {command.name}")
        lines.append(_roff(command.description or command.help))
        for positional in command.positionals:
            lines += _roff_option(positional)
        for option in command.options:
            if global_flags.intersection(option.flags):
                continue
            lines += _roff_option(option)

    if environment:
        lines.append(".SH ENVIRONMENT")
        for name, description in environment.items():
            lines += [".TP", f"\\fB{name}\\fR", _roff(description)]

    if parser.epilog:
        lines += [".SH NOTES", _roff(parser.epilog)]

    return "\n".join(lines) + "\n"
