"""
Message Agent - LangGraph pipeline from chat text to reply text.

Flow:
  START → classify → dispatch → END
"""

import logging
from typing import Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from stacksave.core import Settings, settings as default_settings
from stacksave.llm.actions import ActionDispatcher
from stacksave.llm.classifier import IntentClassifier
from stacksave.llm.intents import ClassificationResult
from stacksave.llm.renderer import ResponseRenderer
from stacksave.services.defi import DefiService, create_defi_service
from stacksave.services.generation import create_text_generator

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, I encountered an error processing your request. Please try again later."


def should_process(is_group: bool, is_from_self: bool) -> bool:
    """Only private messages from other users reach the pipeline"""
    return not is_group and not is_from_self


# ============================================================================
# State Definition
# ============================================================================

class MessageState(TypedDict, total=False):
    """State that flows through the graph"""
    # Input
    text: str
    sender_id: str

    # Classification
    classification: ClassificationResult

    # Output
    reply: str


# ============================================================================
# LangGraph Message Agent
# ============================================================================

class MessageAgent:
    """
    Per-message pipeline:
      1) Classify intent (model or keyword rules)
      2) Dispatch to the gateway and render the reply
    Holds no per-user state; every call starts from a fresh MessageState.
    """

    def __init__(self, classifier: IntentClassifier, dispatcher: ActionDispatcher) -> None:
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.app = self._build_graph()

    def _build_graph(self):
        graph = StateGraph(MessageState)

        graph.add_node("classify", self._classify)
        graph.add_node("dispatch", self._dispatch)

        graph.add_edge(START, "classify")
        graph.add_edge("classify", "dispatch")
        graph.add_edge("dispatch", END)

        return graph.compile()

    async def _classify(self, state: MessageState) -> MessageState:
        """Node: classify the message"""
        classification = await self.classifier.classify(state["text"])
        logger.info(
            f"[{state['sender_id']}] Intent: {classification.intent.value} "
            f"(confidence: {classification.confidence})"
        )
        return {"classification": classification}

    async def _dispatch(self, state: MessageState) -> MessageState:
        """Node: run the action and render the reply"""
        reply = await self.dispatcher.dispatch(state["sender_id"], state["classification"])
        return {"reply": reply}

    async def handle(self, raw_text: str, sender_id: str) -> str:
        """Main entry point - always returns reply text, never raises"""
        try:
            text = raw_text.strip()
            logger.info(f"[{sender_id}] Received: {text}")
            final_state = await self.app.ainvoke({"text": text, "sender_id": sender_id})
            reply = final_state["reply"]
        except Exception:
            logger.exception(f"[{sender_id}] Error handling message")
            return ERROR_REPLY

        logger.info(f"[{sender_id}] Sent: {reply[:50]}...")
        return reply


def create_message_agent(
    config: Optional[Settings] = None,
    gateway: Optional[DefiService] = None,
) -> MessageAgent:
    """Wire classifier, gateway and renderer from settings"""
    config = config or default_settings
    gateway = gateway or create_defi_service(config)

    classifier = IntentClassifier(
        generator=create_text_generator(config, temperature=0.3, max_tokens=200),
        use_llm=config.LLM_INTENT_DETECTION,
    )
    renderer = ResponseRenderer(generator=create_text_generator(config, temperature=0.7, max_tokens=150))

    return MessageAgent(classifier, ActionDispatcher(gateway, renderer))
