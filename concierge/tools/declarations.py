"""Tool declarations shared with the language model.

Each enumerated tool has one pydantic args model.  The same models are used
twice: rendered into function declarations for ``bind_tools`` and used to
validate the arguments the model sends back.  Adding a tool means adding a
model here *and* a handler in :mod:`concierge.resolver`; removing one from
``TOOL_NAMES`` turns it into a silently ignored unknown name.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _ToolArgs(BaseModel):
    # Models drift: tolerate extra keys, strip whitespace in strings.
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class ShowProjectsArgs(_ToolArgs):
    """Mostra carrossel de projetos de arquitetura. USE APENAS quando o usuário
    EXPLICITAMENTE pedir: 'ver projetos', 'portfolio', 'trabalhos anteriores',
    'exemplos'. NÃO use para saudações ou conversas gerais."""

    category: str | None = Field(
        None, description="Categoria opcional (residencial, comercial, interiores)",
    )


class ShowCulturalProjectsArgs(_ToolArgs):
    """Mostra projetos culturais/artísticos. USE APENAS quando o usuário
    perguntar ESPECIFICAMENTE sobre cultura, arte, exposições."""

    category: str | None = Field(None, description="Categoria opcional")


class ShowProductsArgs(_ToolArgs):
    """Mostra produtos da loja. USE APENAS quando o usuário EXPLICITAMENTE
    quiser ver loja, produtos ou comprar algo."""


class ScheduleMeetingArgs(_ToolArgs):
    """Abre agendador de reuniões. USE APENAS quando o usuário EXPLICITAMENTE
    pedir para agendar, marcar reunião, visita ou consulta. Pergunte ANTES
    sobre tipo e modalidade se não especificado."""

    type: Literal["meeting", "visit"] | None = Field(
        None, description="Tipo: 'meeting' ou 'visit'",
    )
    modality: Literal["online", "in_person"] | None = Field(
        None, description="Modalidade: 'online' ou 'in_person'",
    )
    address: str | None = Field(
        None, description="Endereço para visita técnica (obrigatório se type=visit)",
    )


class SaveClientNoteArgs(_ToolArgs):
    """Salva mensagem/recado para a equipe. USE quando o usuário quiser deixar
    recado, falar com alguém da equipe, ou pedir retorno de contato."""

    message: str = Field(..., min_length=1, description="Mensagem a ser salva")
    name: str | None = Field(None, description="Nome do cliente")
    contact: str | None = Field(None, description="Email ou telefone")


class GetSocialLinksArgs(_ToolArgs):
    """Mostra redes sociais e contatos. USE quando perguntarem sobre Instagram,
    WhatsApp, ou como entrar em contato."""


class ShowOfficeMapArgs(_ToolArgs):
    """Mostra localização do escritório. USE quando perguntarem onde fica,
    endereço ou como chegar. NÃO use se o escritório está desativado."""


class NavigateSiteArgs(_ToolArgs):
    """Navega para página do site. USE APENAS quando o usuário EXPLICITAMENTE
    pedir para ir a uma página específica. NUNCA use para saudações, dúvidas
    ou conversas gerais."""

    path: str = Field(
        ..., min_length=1, description="Caminho: /portfolio, /about, /shop, /contact",
    )


class RequestHumanAgentArgs(_ToolArgs):
    """Transfere para atendente humano. USE APENAS quando o usuário
    EXPLICITAMENTE pedir para falar com pessoa, ou quando você realmente não
    conseguir ajudar após várias tentativas."""


class ShowBudgetOptionsArgs(_ToolArgs):
    """Mostra opções de serviços e orçamentos. USE quando perguntarem sobre
    preços, valores ou orçamento."""


class LearnClientPreferenceArgs(_ToolArgs):
    """Registra preferência do cliente para futuras conversas. USE quando o
    cliente mencionar algo importante sobre si mesmo que vale lembrar."""

    topic: str = Field(..., min_length=1, description="Tópico da preferência")
    content: str = Field(..., min_length=1, description="Conteúdo/valor")


class AutoNoteInterestArgs(_ToolArgs):
    """Registra silenciosamente o interesse demonstrado pelo cliente (tipo de
    projeto, prazo, orçamento) para a equipe comercial. Não interrompe a
    conversa."""

    interest: str = Field(..., min_length=1, description="Interesse identificado")
    details: str | None = Field(None, description="Detalhes adicionais")


TOOL_ARGS: dict[str, type[_ToolArgs]] = {
    "showProjects": ShowProjectsArgs,
    "showCulturalProjects": ShowCulturalProjectsArgs,
    "showProducts": ShowProductsArgs,
    "scheduleMeeting": ScheduleMeetingArgs,
    "saveClientNote": SaveClientNoteArgs,
    "getSocialLinks": GetSocialLinksArgs,
    "showOfficeMap": ShowOfficeMapArgs,
    "navigateSite": NavigateSiteArgs,
    "requestHumanAgent": RequestHumanAgentArgs,
    "showBudgetOptions": ShowBudgetOptionsArgs,
    "learnClientPreference": LearnClientPreferenceArgs,
    "autoNoteInterest": AutoNoteInterestArgs,
}

TOOL_NAMES: tuple[str, ...] = tuple(TOOL_ARGS)


def _parameters_schema(model: type[_ToolArgs]) -> dict[str, Any]:
    schema = model.model_json_schema()
    schema.pop("title", None)
    schema.pop("description", None)
    schema.setdefault("properties", {})
    return schema


def tool_declarations() -> list[dict[str, Any]]:
    """Function declarations in OpenAI format, one per enumerated tool.

    ``ChatAnthropic.bind_tools`` (and every other LangChain chat model)
    accepts this shape directly.
    """
    declarations = []
    for name, model in TOOL_ARGS.items():
        description = " ".join((model.__doc__ or "").split())
        declarations.append(
            {
                "type": "function",
                "function": {
                    "name": name,
                    "description": description,
                    "parameters": _parameters_schema(model),
                },
            }
        )
    return declarations
