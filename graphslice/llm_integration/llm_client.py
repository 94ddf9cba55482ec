"""
Configurable LLM client supporting multiple providers
Uses LangChain for better integration
"""
from dataclasses import dataclass
from typing import Optional
import os

from graphslice.exceptions import InferenceResponseError

DEFAULT_MODELS = {
    'groq': 'openai/gpt-oss-120b',
    'openai': 'gpt-4o',
    'anthropic': 'claude-3-5-sonnet-latest',
    'local': 'llama3',
}

SYSTEM_PROMPT = (
    "You are a Python expert helping to analyze code dependencies. "
    "Output only the requested JSON, no markdown fencing."
)


@dataclass
class LLMConfig:
    """LLM configuration"""
    provider: str  # 'groq', 'openai', 'anthropic', 'local'
    model: str  # e.g., 'openai/gpt-oss-120b', 'gpt-4o', 'llama3'
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    temperature: float = 0.1
    max_tokens: int = 2048
    top_p: float = 1.0
    reasoning_effort: str = "medium"

    @classmethod
    def from_env(cls, provider: Optional[str] = None, model: Optional[str] = None) -> 'LLMConfig':
        """
        Build a config from LLM_PROVIDER, LLM_MODEL, LLM_API_KEY and LLM_BASE_URL

        Explicit arguments win over the environment.
        """
        provider = provider or os.getenv('LLM_PROVIDER', 'groq')
        return cls(
            provider=provider,
            model=model or os.getenv('LLM_MODEL') or DEFAULT_MODELS.get(provider, 'llama3'),
            api_key=os.getenv('LLM_API_KEY'),
            api_base=os.getenv('LLM_BASE_URL')
        )


class LLMClient:
    """
    Configurable LLM client
    Wraps a LangChain chat model behind a single complete() call
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize LLM client

        Args:
            config: LLMConfig object

        Raises:
            ValueError: for an unknown provider or a missing API key
            ImportError: when the provider's LangChain package is not installed
        """
        self.config = config
        self.client = None
        self._initialize_client()

    def _initialize_client(self):
        """Initialize the appropriate LLM client"""
        if self.config.provider == 'groq':
            self._init_groq()
        elif self.config.provider == 'openai':
            self._init_openai()
        elif self.config.provider == 'anthropic':
            self._init_anthropic()
        elif self.config.provider == 'local':
            self._init_local()
        else:
            raise ValueError(f"Unsupported LLM provider: {self.config.provider}")

    def _init_groq(self):
        """Initialize Groq client using LangChain"""
        try:
            from langchain_groq import ChatGroq
        except ImportError:
            raise ImportError("Please install langchain-groq: pip install langchain-groq")

        api_key = self.config.api_key or os.getenv('GROQ_API_KEY')
        if not api_key:
            raise ValueError("Groq API key not provided. Set GROQ_API_KEY or LLM_API_KEY in .env")

        self.client = ChatGroq(
            model=self.config.model,
            api_key=api_key,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            top_p=self.config.top_p,
            reasoning_effort=self.config.reasoning_effort
        )

    def _init_openai(self):
        """Initialize OpenAI client (or any OpenAI-compatible endpoint) using LangChain"""
        try:
            from langchain_openai import ChatOpenAI
        except ImportError:
            raise ImportError("Please install langchain-openai: pip install langchain-openai")

        api_key = self.config.api_key or os.getenv('OPENAI_API_KEY')
        if not api_key:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY or LLM_API_KEY in .env")

        kwargs = {}
        if self.config.api_base:
            kwargs['base_url'] = self.config.api_base
        self.client = ChatOpenAI(
            model=self.config.model,
            api_key=api_key,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            top_p=self.config.top_p,
            **kwargs
        )

    def _init_anthropic(self):
        """Initialize Anthropic client using LangChain"""
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise ImportError("Please install langchain-anthropic: pip install langchain-anthropic")

        api_key = self.config.api_key or os.getenv('ANTHROPIC_API_KEY')
        if not api_key:
            raise ValueError("Anthropic API key not provided. Set ANTHROPIC_API_KEY or LLM_API_KEY in .env")

        self.client = ChatAnthropic(
            model=self.config.model,
            api_key=api_key,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens
        )

    def _init_local(self):
        """Initialize local LLM (e.g., Ollama) using LangChain"""
        try:
            from langchain_community.llms import Ollama
        except ImportError:
            raise ImportError("Please install langchain-community: pip install langchain-community")

        self.client = Ollama(
            model=self.config.model,
            base_url=self.config.api_base or 'http://localhost:11434',
            temperature=self.config.temperature
        )

    def complete(self, prompt: str, system: str = SYSTEM_PROMPT) -> str:
        """
        Send one prompt and return the response text

        Raises:
            InferenceResponseError: if the model call fails
        """
        from langchain_core.messages import HumanMessage, SystemMessage

        messages = [
            SystemMessage(content=system),
            HumanMessage(content=prompt)
        ]

        try:
            response = self.client.invoke(messages)
        except Exception as e:
            raise InferenceResponseError(f"LLM call failed ({self.config.provider}): {e}") from e

        # Extract content based on response type
        if hasattr(response, 'content'):
            return response.content
        elif isinstance(response, str):
            return response
        else:
            return str(response)
