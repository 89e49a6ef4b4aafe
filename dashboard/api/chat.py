import logging

from fastapi import APIRouter, Depends

from core.commands import (
    CommandExecutor, CommandValidationError, MetricNotFoundError,
    parse_command, strip_command
)
from core.storage import LocalStore
from services.ai_service import AIService, build_context
from shared.models import ChatRequestSchema
from ..dependencies import get_ai_service, get_executor, get_store
from ..responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("")
async def chat(
    body: ChatRequestSchema,
    store: LocalStore = Depends(get_store),
    ai_service: AIService = Depends(get_ai_service),
    executor: CommandExecutor = Depends(get_executor)
):
    """
    Encaminha a conversa ao provedor de IA e aplica o comando embutido, se houver
    """
    context = body.context if body.context is not None else build_context(store)
    messages = [m.model_dump() for m in body.messages]

    reply = await ai_service.chat(messages, context)

    command_outcome = None
    command = parse_command(reply['content'])
    if command is not None:
        command_outcome = {'action': command.action, 'applied': False}
        try:
            record = executor.execute(command)
            if record is not None:
                command_outcome.update(applied=True, record=record)
            else:
                command_outcome['error'] = 'Ação desconhecida'
        except MetricNotFoundError as e:
            command_outcome['error'] = str(e)
        except CommandValidationError as e:
            command_outcome.update(error=str(e), details=e.details)

    return success_response({
        'role': reply['role'],
        'content': strip_command(reply['content']),
        'command': command_outcome
    })
