"""
Command store tests (levels, main pointer, cross-level lookups).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase
from unittest.mock import Mock

from stratum import (
    GLOBAL,
    ArgumentSource,
    CommandStore,
    DefaultsSource,
    OptionStore,
    Registry,
    UnknownOptionError,
    integer_option,
    string_option,
)


class TestCommandStore(TestCase):

    def setUp(self):
        registry = Registry()
        self.top, self.leaf = registry.get("top"), registry.get("leaf")
        self.host = string_option("host", "example.org")
        self.port = integer_option("port", 80)
        self.shadow = integer_option("port", 8080)
        self.chain = CommandStore()
        self.chain.add_store(GLOBAL, OptionStore([self.host, self.port], DefaultsSource()))
        self.chain.add_store(self.top, OptionStore([], DefaultsSource()))
        self.chain.add_store(self.leaf, OptionStore([self.shadow], DefaultsSource()))

    def tearDown(self):
        self.chain.close()

    def testFirstLevelIsMain(self):
        self.assertIs(self.chain.main, GLOBAL)
        self.chain.set_main(self.leaf)
        self.assertIs(self.chain.main, self.leaf)

    def testSetMainRequiresKnownLevel(self):
        with self.assertRaises(ValueError):
            self.chain.set_main(Registry().get("other"))

    def testDuplicateLevelRejected(self):
        with self.assertRaises(ValueError):
            self.chain.add_store(self.top, OptionStore())

    def testUnknownLevelRejected(self):
        with self.assertRaises(ValueError):
            self.chain.store(Registry().get("other"))

    def testCommandsKeepVisitingOrder(self):
        self.assertEqual(self.chain.commands(), [GLOBAL, self.top, self.leaf])

    def testGetReadsMainOrNamedLevel(self):
        self.assertEqual(self.chain.get(self.port), 80)
        self.assertEqual(self.chain.get(self.leaf, self.shadow), 8080)
        self.assertEqual(self.chain.get_all(self.leaf, self.shadow), [8080])
        with self.assertRaises(TypeError):
            self.chain.get()

    def testFindReturnsShallowestDeclaringLevel(self):
        self.chain.set_main(self.leaf)
        self.assertEqual(self.chain.find(self.port), 80)
        self.assertEqual(self.chain.find(self.shadow), 8080)
        self.assertEqual(self.chain.find_all(self.host), ["example.org"])

    def testFindUndeclaredRaises(self):
        with self.assertRaises(UnknownOptionError):
            self.chain.find(string_option("host"))

    def testOptions(self):
        self.assertEqual(self.chain.options(), [self.host, self.port, self.shadow])
        self.assertEqual(self.chain.options(self.leaf), [self.shadow])
        self.assertEqual(self.chain.options(Registry().get("other")), [])

    def testKnowsAndHas(self):
        self.assertTrue(self.chain.knows(self.shadow))
        self.assertTrue(self.chain.has(self.host))
        self.assertFalse(self.chain.knows(string_option("host")))

    def testBindTargetsMain(self):
        self.chain.set_main(self.leaf)
        arguments = ArgumentSource()
        self.chain.bind(arguments)
        arguments.consume(["--port=9000"])
        self.assertEqual(self.chain.get(self.shadow), 9000)
        self.assertEqual(self.chain.get(GLOBAL, self.port), 80)

    def testListenersDelegateToDeclaringLevel(self):
        listener = Mock()
        self.chain.on_value(self.port, listener)
        self.chain.dynamic_value(self.host).on_value(listener)
        self.chain.close()
        self.assertCountEqual([args.args for args in listener.call_args_list], [(80,), ("example.org",)])


if __name__ == "__main__":
    unittest.main()
