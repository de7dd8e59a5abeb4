import io
import unittest
from dataclasses import dataclass
from unittest import mock

from askline.core.scope import Asker, create_ask
from askline.core.session import ConsoleSession, ScriptedSession
from askline.core.types import AskOptions, AskProps, AttemptContext, Question


class SessionFactory:
    """Props factory that hands out a new scripted session per call."""

    def __init__(self, *scripts):
        self._scripts = list(scripts)
        self.sessions: list[ScriptedSession] = []

    def __call__(self) -> AskProps:
        session = ScriptedSession(self._scripts.pop(0))
        self.sessions.append(session)
        return AskProps(session=session)


@dataclass
class MutableProps(AskProps):
    muted: bool = False

    def mute(self) -> None:
        self.muted = True

    def unmute(self) -> None:
        self.muted = False


class SingleShotTests(unittest.IsolatedAsyncioTestCase):
    async def test_each_call_opens_and_closes_its_own_session(self) -> None:
        factory = SessionFactory(["first"], ["second"])
        ask = Asker(factory)
        self.assertEqual(await ask("One? "), "first")
        self.assertEqual(await ask("Two? "), "second")
        self.assertEqual([s.close_count for s in factory.sessions], [1, 1])

    async def test_session_closed_when_call_fails(self) -> None:
        factory = SessionFactory([])
        ask = Asker(factory)
        with self.assertRaises(EOFError):
            await ask("Anything? ")
        self.assertEqual(factory.sessions[0].close_count, 1)

    async def test_session_closed_when_callback_fails(self) -> None:
        factory = SessionFactory(["x"])
        ask = Asker(factory)

        def fmt(value: str, _ctx: AttemptContext) -> str:
            raise ValueError("nope")

        with self.assertRaises(ValueError):
            await ask("> ", format=fmt)
        self.assertEqual(factory.sessions[0].close_count, 1)

    async def test_keyword_options_override_options_record(self) -> None:
        factory = SessionFactory(["  no ", " yes "])
        ask = Asker(factory)
        answer = await ask("> ", AskOptions(trim=True, accept=["no"]), accept=["yes"])
        self.assertEqual(answer, "yes")
        self.assertEqual(factory.sessions[0].reads, 2)

    async def test_generate_uses_question_generator(self) -> None:
        factory = SessionFactory(["a", "b"])
        ask = Asker(factory)

        def generate(context: AttemptContext, _props: AskProps) -> Question:
            return Question(
                text=f"Question {context.iteration} [{context.previous_answer}]: ",
                accept=["b"],
            )

        self.assertEqual(await ask.generate(generate), "b")
        session = factory.sessions[0]
        self.assertEqual(session.prompts, ["Question 0 []: ", "Question 1 [a]: "])
        self.assertEqual(session.close_count, 1)


class ScopedBatchTests(unittest.IsolatedAsyncioTestCase):
    async def test_async_block_shares_one_session_and_closes_once(self) -> None:
        factory = SessionFactory(["Ada", "36"])
        ask = Asker(factory)
        seen_props = []

        async def block(bound: Asker, props: AskProps):
            seen_props.append(props)
            name = await bound("Name? ")
            self.assertEqual(props.session.close_count, 0)
            age = await bound.generate(
                lambda _ctx, bag: seen_props.append(bag) or Question(text="Age? ")
            )
            self.assertEqual(props.session.close_count, 0)
            return name, age

        result = await ask.scoped(block)
        self.assertEqual(result, ("Ada", "36"))
        self.assertEqual(len(factory.sessions), 1)
        self.assertEqual(factory.sessions[0].close_count, 1)
        self.assertIs(seen_props[0], seen_props[1])

    async def test_async_block_failure_closes_once(self) -> None:
        factory = SessionFactory(["x"])
        ask = Asker(factory)

        async def block(bound: Asker, _props: AskProps):
            await bound("> ")
            raise RuntimeError("block failed")

        with self.assertRaises(RuntimeError):
            await ask.scoped(block)
        self.assertEqual(factory.sessions[0].close_count, 1)

    async def test_async_block_not_closed_before_it_settles(self) -> None:
        factory = SessionFactory(["x"])
        ask = Asker(factory)

        async def block(bound: Asker, _props: AskProps):
            return await bound("> ")

        pending = ask.scoped(block)
        self.assertEqual(factory.sessions[0].close_count, 0)
        self.assertEqual(await pending, "x")
        self.assertEqual(factory.sessions[0].close_count, 1)

    def test_sync_block_closes_once(self) -> None:
        factory = SessionFactory([])
        ask = Asker(factory)
        self.assertEqual(ask.scoped(lambda _bound, props: type(props).__name__), "AskProps")
        self.assertEqual(factory.sessions[0].close_count, 1)

    def test_sync_block_failure_closes_once(self) -> None:
        factory = SessionFactory([])
        ask = Asker(factory)

        def block(_bound: Asker, _props: AskProps):
            raise KeyError("boom")

        with self.assertRaises(KeyError):
            ask.scoped(block)
        self.assertEqual(factory.sessions[0].close_count, 1)

    async def test_nested_scope_reuses_enclosing_session(self) -> None:
        factory = SessionFactory(["outer", "inner"])
        ask = Asker(factory)

        async def inner(bound: Asker, props: AskProps):
            return await bound("Inner? "), props

        async def outer(bound: Asker, props: AskProps):
            first = await bound("Outer? ")
            second, inner_props = await bound.scoped(inner)
            self.assertIs(inner_props, props)
            self.assertEqual(props.session.close_count, 0)
            return first, second

        self.assertEqual(await ask.scoped(outer), ("outer", "inner"))
        self.assertEqual(len(factory.sessions), 1)
        self.assertEqual(factory.sessions[0].close_count, 1)

    async def test_custom_props_fields_visible_to_generators(self) -> None:
        session = ScriptedSession(["secret", "done"])
        ask = Asker(lambda: MutableProps(session=session))
        states = []

        def generate(context: AttemptContext, props: MutableProps) -> Question:
            states.append(props.muted)
            return Question(
                text="Password: " if context.iteration == 0 else "Again: ",
                on=lambda event: props.mute() if event == "ask" else props.unmute(),
                accept=["done"],
            )

        async def block(bound: Asker, props: MutableProps):
            props.mute()
            return await bound.generate(generate)

        self.assertEqual(await ask.scoped(block), "done")
        self.assertEqual(states, [True, False])
        self.assertEqual(session.close_count, 1)

    async def test_session_context_manager_closes_once(self) -> None:
        factory = SessionFactory(["a", "b"])
        ask = Asker(factory)
        async with ask.session() as (bound, props):
            self.assertEqual(await bound("1? "), "a")
            self.assertEqual(await bound("2? "), "b")
            self.assertEqual(props.session.close_count, 0)
        self.assertEqual(factory.sessions[0].close_count, 1)

    async def test_session_context_manager_closes_on_error(self) -> None:
        factory = SessionFactory([])
        ask = Asker(factory)
        with self.assertRaises(EOFError):
            async with ask.session() as (bound, _props):
                await bound("> ")
        self.assertEqual(factory.sessions[0].close_count, 1)


class SuppliedSessionTests(unittest.IsolatedAsyncioTestCase):
    async def test_supplied_session_is_never_closed(self) -> None:
        session = ScriptedSession(["a", "b", "c"])
        ask = create_ask(lambda: AskProps(session=ScriptedSession([]))).use(session)
        self.assertEqual(await ask("> "), "a")

        async def block(bound: Asker, _props: AskProps):
            return [await bound("> "), await bound("> ")]

        self.assertEqual(await ask.scoped(block), ["b", "c"])
        self.assertEqual(session.close_count, 0)

    async def test_default_factory_reads_given_streams(self) -> None:
        stdin = io.StringIO("maybe\nyes\n")
        stdout = io.StringIO()
        ask = create_ask(stdin=stdin, stdout=stdout, backend="console")
        answer = await ask("Continue? ", accept=["yes", "no"])
        self.assertEqual(answer, "yes")
        self.assertEqual(stdout.getvalue(), "Continue? Continue? ")

    async def test_default_streams_follow_later_redirection(self) -> None:
        ask = create_ask(backend="console")
        stdout = io.StringIO()
        with mock.patch("sys.stdin", io.StringIO("later\n")), mock.patch("sys.stdout", stdout):
            answer = await ask("Redirected? ")
        self.assertEqual(answer, "later")
        self.assertEqual(stdout.getvalue(), "Redirected? ")

    async def test_default_factory_opens_console_session_for_pipes(self) -> None:
        ask = create_ask(stdin=io.StringIO(""), stdout=io.StringIO())

        def block(_bound: Asker, props: AskProps):
            return props.session

        session = ask.scoped(block)
        self.assertIsInstance(session, ConsoleSession)
        self.assertTrue(session.closed)

    async def test_unknown_backend_raises(self) -> None:
        ask = create_ask(stdin=io.StringIO(""), stdout=io.StringIO(), backend="telepathy")
        with self.assertRaises(ValueError):
            await ask("> ")


if __name__ == "__main__":
    unittest.main()
