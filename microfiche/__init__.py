from microfiche.microfiche_datatypes import (
    Store, Handler, Data, Module, Invocation, Block,
    MicroficheError, UndefinedDirective, NotInvocable, EmptyCommand, MalformedBlock,
    CommandNotFound, CommandFailed, CommandInputError, InvalidName,
)
from microfiche.microfiche_reader import iter_blocks, read_invocation
from microfiche.microfiche_interpreter import Dispatcher
from microfiche.microfiche_runtime import DocumentRunner, ExecutionResult, directive, interpret
