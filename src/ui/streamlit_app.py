import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.append(str(project_root))

import asyncio
import streamlit as st
from src.client.conversation import ChatConversation, DisplayMessage, RequestState
from src.client.relay_client import RelayClient, RelayError
from src.config.settings import settings
from src.utils.logging import logger

def render_links(message: DisplayMessage):
    if not message.navigation_links:
        return
    links = " · ".join(
        f"[{link.label}]({settings.APP_URL.rstrip('/')}{link.url})"
        for link in message.navigation_links
    )
    st.markdown(f"**Go to:** {links}")

class StreamlitUI:
    def __init__(self):
        if "conversation" not in st.session_state:
            st.session_state.conversation = ChatConversation(RelayClient())
        self.conversation: ChatConversation = st.session_state.conversation

    def setup_page(self):
        st.title("Lingua Tutor")
        st.write("Ask about Arabic vocabulary and I'll point you to the right lessons.")

    async def setup_sidebar(self):
        client = self.conversation.client
        try:
            models = await client.get_models()
        except RelayError as e:
            st.sidebar.error(f"AI chat is unavailable: {e}")
            return False

        if not models.models and not models.default_model:
            st.sidebar.error("No models are configured.")
            return False
        options = models.models or [models.default_model]
        default_index = options.index(models.default_model) if models.default_model in options else 0
        self.conversation.model = st.sidebar.selectbox("Model", options=options, index=default_index)

        if st.sidebar.button("New chat"):
            self.conversation.new_chat()
            st.rerun()

        st.sidebar.subheader("History")
        for session in await client.list_sessions():
            cols = st.sidebar.columns([4, 1])
            if cols[0].button(session.title, key=f"load-{session.id}"):
                await self.conversation.load_session(session.id)
                if self.conversation.error:
                    st.sidebar.error(self.conversation.error)
                else:
                    st.rerun()
            if cols[1].button("🗑", key=f"delete-{session.id}"):
                await self.conversation.discard_session(session.id)
                st.rerun()
        return True

    @staticmethod
    def display_chat_message(message: DisplayMessage):
        with st.chat_message(message.role):
            st.markdown(message.content)
            render_links(message)

    async def process_query(self, query: str):
        """Send a query and render the reply while it streams."""
        with st.chat_message("assistant"):
            placeholder = st.empty()
            placeholder.markdown("Thinking...")

            def on_update(conversation: ChatConversation):
                last = conversation.messages[-1] if conversation.messages else None
                if last is not None and last.role == "assistant":
                    placeholder.markdown(last.content)

            self.conversation.on_update = on_update
            try:
                reply = await self.conversation.send(query)
                if reply is None:
                    placeholder.markdown("I couldn't generate a response. Please try rephrasing your question.")
                else:
                    placeholder.markdown(reply.content)
                    render_links(reply)
            except RelayError as e:
                logger.error(f"Error generating response: {e}")
                placeholder.markdown(f"Sorry, I encountered an error: {e}")
            finally:
                self.conversation.on_update = None

        if self.conversation.error and self.conversation.state == RequestState.SETTLED_OK:
            st.warning(self.conversation.error)

    async def main(self):
        self.setup_page()
        if not await self.setup_sidebar():
            return

        for message in self.conversation.messages:
            self.display_chat_message(message)

        user_input = st.chat_input("Ask a question...", disabled=self.conversation.is_loading)
        if user_input:
            self.display_chat_message(DisplayMessage(role="user", content=user_input))
            await self.process_query(user_input)

def run_app():
    ui = StreamlitUI()
    asyncio.run(ui.main())

if __name__ == "__main__":
    run_app()
