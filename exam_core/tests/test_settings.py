import inspect

from django.test import SimpleTestCase
from rest_framework.settings import api_settings

from exam_core import authenticator, exceptions, tokens
from exam_core.authenticator import SessionTokenAuthentication
from exam_core.utils.exception_handler import exception_handler


class FrameworkWiringTests(SimpleTestCase):

    def test_authentication_and_error_handler_resolve(self):
        self.assertEqual(api_settings.DEFAULT_AUTHENTICATION_CLASSES, [SessionTokenAuthentication])
        self.assertIs(api_settings.EXCEPTION_HANDLER, exception_handler)

    def test_authentication_modules_do_not_import_drf_views(self):
        # rest_framework.views resolves DEFAULT_AUTHENTICATION_CLASSES while it loads
        for module in (authenticator, exceptions, tokens):
            self.assertNotIn("rest_framework.views", inspect.getsource(module))
