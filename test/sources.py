"""
Option source tests (subscription, arguments, environment, properties).

Scope
- Validate the subscribe/unsubscribe bookkeeping and the consumer contract.
- Validate argument tail splitting in both scan modes and the boolean negations.
- Validate environment naming, property file locators and property lines.

Conventions
- Test method names follow CamelCase per project convention.
- Consumers are unittest.mock.Mock objects; sources call them synchronously.
"""

from __future__ import annotations

import io
import os
import pathlib
import tempfile
import unittest
from unittest import TestCase
from unittest.mock import Mock, call

from stratum import (
    ArgumentSource,
    DefaultsSource,
    EnvironmentSource,
    ParseError,
    PropertyFileSource,
    PropertyLineSource,
    SourceFailure,
    UnknownOptionError,
    boolean_option,
    integer_option,
    parse_properties,
    string_option,
)


class TestSubscription(TestCase):

    def testSubscribeReplacesRegistration(self):
        source = ArgumentSource()
        consumer = Mock()
        first, second = string_option("first"), string_option("second")
        source.subscribe([first, second], consumer)
        source.subscribe([second], consumer)
        self.assertEqual(source.listeners, {consumer: [second]})

    def testUnsubscribeNarrowsThenDrops(self):
        source = ArgumentSource()
        consumer = Mock()
        first, second = string_option("first"), string_option("second")
        source.subscribe([first, second], consumer)
        source.unsubscribe([first], consumer)
        self.assertEqual(source.listeners, {consumer: [second]})
        source.unsubscribe([second], consumer)
        self.assertEqual(source.listeners, {})

    def testUnsubscribeUnknownConsumerIsNoOp(self):
        source = ArgumentSource()
        source.unsubscribe([string_option("first")], Mock())
        self.assertEqual(source.listeners, {})

    def testConsumerFailureIsWrapped(self):
        source = ArgumentSource()
        option = string_option("name")
        error = RuntimeError("boom")
        source.subscribe([option], Mock(side_effect=error))
        with self.assertRaises(SourceFailure) as context:
            source.consume(["--name=x"])
        self.assertIs(context.exception.__cause__, error)

    def testCommandExceptionPropagatesUnchanged(self):
        source = ArgumentSource()
        option = string_option("name")
        fault = UnknownOptionError(option)
        source.subscribe([option], Mock(side_effect=fault))
        with self.assertRaises(UnknownOptionError) as context:
            source.consume(["--name=x"])
        self.assertIs(context.exception, fault)


class TestDefaultsSource(TestCase):

    def testEmitsNonNullDefaultsOnSubscribe(self):
        port, host = integer_option("port", 80), string_option("host")
        consumer = Mock()
        DefaultsSource().subscribe([port, host], consumer)
        consumer.assert_called_once_with(port, [80])


class TestArgumentSource(TestCase):

    def setUp(self):
        self.source = ArgumentSource()
        self.consumer = Mock()
        self.name = string_option("name")
        self.verbose = boolean_option("verbose")
        self.source.subscribe([self.name, self.verbose], self.consumer)

    def testValuesAreCollectedPerPass(self):
        self.source.consume(["--name=a", "--name=b"])
        self.consumer.assert_called_once_with(self.name, ["a", "b"])

    def testBareNameCarriesEmptyValue(self):
        self.source.consume(["--name"])
        self.consumer.assert_called_once_with(self.name, [""])

    def testMultiWordNames(self):
        option = string_option("first name")
        consumer = Mock()
        source = ArgumentSource()
        source.subscribe([option], consumer)
        source.consume(["--first-name=John"])
        consumer.assert_called_once_with(option, ["John"])

    def testBooleanTokenForms(self):
        cases = {
            "--verbose": True,
            "--verbose=true": True,
            "--verbose=false": False,
            "--no-verbose": False,
            "--not-verbose=true": False,
            "--non-verbose=false": True,
        }
        for token, expected in cases.items():
            consumer = Mock()
            source = ArgumentSource()
            source.subscribe([self.verbose], consumer)
            source.consume([token])
            consumer.assert_called_once_with(self.verbose, [expected])

    def testPlainSpellingWinsOverNegation(self):
        self.source.consume(["--no-verbose", "--verbose=false"])
        self.consumer.assert_called_once_with(self.verbose, [False])

    def testNumericBooleanReadsFalse(self):
        self.source.consume(["--verbose=1"])
        self.consumer.assert_called_once_with(self.verbose, [False])
        consumer = Mock()
        source = ArgumentSource()
        source.subscribe([self.verbose], consumer)
        source.consume(["--no-verbose=1"])
        consumer.assert_called_once_with(self.verbose, [True])

    def testMalformedValueRaisesParseError(self):
        port = integer_option("port")
        source = ArgumentSource()
        source.subscribe([port], Mock())
        with self.assertRaises(ParseError):
            source.consume(["--port=eighty"])

    def testNamesMatchExactly(self):
        option = string_option("first name")
        consumer = Mock()
        source = ArgumentSource()
        source.subscribe([option, self.verbose], consumer)
        tail = source.consume_tailed(["--Verbose", "--first_name=John", "--verbose"], full_scan=True)
        self.assertEqual(tail, ["--Verbose", "--first_name=John"])
        consumer.assert_called_once_with(self.verbose, [True])

    def testInexactNameStartsTailInStopMode(self):
        tail = self.source.consume_tailed(["--NAME=a", "--name=b"])
        self.assertEqual(tail, ["--NAME=a", "--name=b"])
        self.consumer.assert_not_called()

    def testStopModeKeepsRestVerbatim(self):
        tail = self.source.consume_tailed(["--name=a", "sub", "--verbose", "x"])
        self.assertEqual(tail, ["sub", "--verbose", "x"])
        self.consumer.assert_called_once_with(self.name, ["a"])

    def testFullScanSetsUnknownAside(self):
        tail = self.source.consume_tailed(["sub", "--verbose", "--other", "x"], full_scan=True)
        self.assertEqual(tail, ["sub", "--other", "x"])
        self.consumer.assert_called_once_with(self.verbose, [True])

    def testDoubleDashEndsScanning(self):
        tail = self.source.consume_tailed(["--name=a", "--", "--verbose", "x"], full_scan=True)
        self.assertEqual(tail, ["--verbose", "x"])
        self.consumer.assert_called_once_with(self.name, ["a"])

    def testDoubleDashAfterTailIsKeptInStopMode(self):
        tail = self.source.consume_tailed(["sub", "--", "--name=a"])
        self.assertEqual(tail, ["sub", "--", "--name=a"])
        self.consumer.assert_not_called()

    def testTailNeedsSingleListener(self):
        self.source.subscribe([self.name], Mock())
        with self.assertRaises(ValueError):
            self.source.consume_tailed(["--name=a"])

    def testTailWithoutListenerOnlySplits(self):
        self.assertEqual(ArgumentSource().consume_tailed(["--name=a", "sub"]), ["--name=a", "sub"])


class TestEnvironmentSource(TestCase):

    def testPrefixedVariable(self):
        option = string_option("first name")
        consumer = Mock()
        source = EnvironmentSource("APP")
        source.subscribe([option], consumer)
        source.consume({"APP_FIRST_NAME": "John", "FIRST_NAME": "Jane"})
        consumer.assert_called_once_with(option, ["John"])

    def testWithoutPrefix(self):
        option = integer_option("port")
        consumer = Mock()
        source = EnvironmentSource()
        source.subscribe([option], consumer)
        source.consume({"PORT": "9000"})
        consumer.assert_called_once_with(option, [9000])

    def testCustomSeparator(self):
        self.assertEqual(EnvironmentSource("APP", "__").variable(string_option("first name")), "APP__FIRST__NAME")

    def testDefaultsToProcessEnvironment(self):
        option = string_option("stratum test marker")
        consumer = Mock()
        source = EnvironmentSource("X")
        source.subscribe([option], consumer)
        os.environ["X_STRATUM_TEST_MARKER"] = "present"
        try:
            source.consume()
        finally:
            del os.environ["X_STRATUM_TEST_MARKER"]
        consumer.assert_called_once_with(option, ["present"])


class TestPropertyFileSource(TestCase):

    def setUp(self):
        self.source = PropertyFileSource()
        self.consumer = Mock()
        self.name = string_option("first name")
        self.verbose = boolean_option("verbose")
        self.source.subscribe([self.name, self.verbose], self.consumer)

    def testParseProperties(self):
        text = "\n".join((
            "# comment",
            "! another comment",
            "a=1",
            "b : 2",
            "c 3",
            "long = first \\",
            "    second",
            "a=4",
        ))
        self.assertEqual(parse_properties(text), {"a": "4", "b": "2", "c": "3", "long": "first second"})

    def testKeyVariants(self):
        for key in ("FIRST_NAME", "first_name", "first-name", "first.name"):
            consumer = Mock()
            source = PropertyFileSource()
            source.subscribe([self.name], consumer)
            source.consume(io.StringIO("%s=John\n" % key))
            consumer.assert_called_once_with(self.name, ["John"])

    def testNegatedBoolean(self):
        self.source.consume(io.StringIO("no-verbose=true\n"))
        self.consumer.assert_called_once_with(self.verbose, [False])

    def testParsedMapping(self):
        self.source.consume({"FIRST_NAME": "John"})
        self.consumer.assert_called_once_with(self.name, ["John"])

    def testBinaryFileObject(self):
        self.source.consume(io.BytesIO(b"first.name=Jos\xc3\xa9\n"))
        self.consumer.assert_called_once_with(self.name, ["José"])

    def testPathAndLocator(self):
        with tempfile.TemporaryDirectory() as directory:
            path = pathlib.Path(directory, "app.properties")
            path.write_text("first_name=John\n", encoding="utf-8")
            self.source.consume(path)
            self.source.consume(str(path))
            self.source.consume("file://" + str(path))
        self.assertEqual(self.consumer.call_args_list, [call(self.name, ["John"])] * 3)

    def testMissingPathAndNoneAreIgnored(self):
        self.source.consume("/definitely/not/here.properties")
        self.source.consume(None)
        self.consumer.assert_not_called()

    def testMissingLocatorFails(self):
        with self.assertRaises(SourceFailure):
            self.source.consume("file:///definitely/not/here.properties")
        with self.assertRaises(SourceFailure):
            self.source.consume("package://stratum/missing.properties")

    def testUnsupportedSchemeFails(self):
        with self.assertRaises(SourceFailure):
            self.source.consume("http://example.org/app.properties")


class TestPropertyLineSource(TestCase):

    def setUp(self):
        self.source = PropertyLineSource()
        self.consumer = Mock()
        self.name = string_option("first name")
        self.verbose = boolean_option("verbose")
        self.source.subscribe([self.name, self.verbose], self.consumer)

    def testItems(self):
        self.source.consume("First_Name=John  not-verbose")
        self.assertEqual(self.consumer.call_args_list, [
            call(self.name, ["John"]),
            call(self.verbose, [False]),
        ])

    def testCustomSeparator(self):
        source = PropertyLineSource(r"\s*,\s*")
        consumer = Mock()
        source.subscribe([self.name], consumer)
        source.consume("first-name=John Smith")
        consumer.assert_called_once_with(self.name, ["John Smith"])

    def testUnknownKeyFails(self):
        with self.assertRaises(UnknownOptionError):
            self.source.consume("first-name=John color=red")
        self.consumer.assert_not_called()


if __name__ == "__main__":
    unittest.main()
