from sitedeploy.build.parameters import GIT_AUTO_PULL, NPM_INSTALL_ON_BUILD, NPM_RUN_BUILD
from sitedeploy.build.script_generator import BashScriptGenerator, ScriptOptions


class TestBashScriptGenerator:
    def setup_method(self):
        self.generator = BashScriptGenerator()

    def test_full_script(self):
        script = self.generator.generate("shop", "/var/www/shop", include_pm2=True)

        assert script.startswith("#!/bin/bash\n")
        assert "# Build script for shop" in script
        assert "cd /var/www/shop 2>&1" in script
        assert "git status 2>&1" in script
        assert "git pull 2>&1" in script
        assert "npm install 2>&1" in script
        assert "npm run build 2>&1" in script
        assert "sh pm2_dev.sh 2>&1" in script
        assert script.rstrip().endswith("exit 0")

    def test_never_uses_sudo_and_lf_only(self):
        script = self.generator.generate("shop", "/var/www/shop", include_pm2=True)

        assert "sudo " not in script
        assert "\r" not in script

    def test_steps_follow_options(self):
        options = ScriptOptions(git_auto_pull=False, npm_install=False, npm_run_build=True)
        script = self.generator.generate("shop", "/var/www/shop", include_pm2=False, options=options)

        assert "git pull" not in script
        assert "npm install" not in script
        assert "npm run build" in script
        assert "pm2_dev.sh" not in script

    def test_step_order(self):
        script = self.generator.generate("shop", "/srv/shop", include_pm2=True)

        positions = [script.index(s) for s in ("git status", "git pull", "npm install", "npm run build", "pm2_dev.sh")]
        assert positions == sorted(positions)

    def test_source_path_is_quoted(self):
        script = self.generator.generate("shop", "/srv/my shop; rm -rf /", include_pm2=False)

        assert "cd '/srv/my shop; rm -rf /' 2>&1" in script

    def test_site_name_newlines_do_not_break_header(self):
        script = self.generator.generate("shop\nrm -rf /", "/srv/shop", include_pm2=False)

        assert "# Build script for shop rm -rf /\n" in script


class TestScriptOptionsFromParameters:
    async def test_defaults_when_parameters_missing(self, parameters):
        assert await ScriptOptions.from_parameters(parameters) == ScriptOptions()

    async def test_reads_flags(self, parameters):
        await parameters.set_value(GIT_AUTO_PULL, "false")
        await parameters.set_value(NPM_INSTALL_ON_BUILD, "0")
        await parameters.set_value(NPM_RUN_BUILD, "true")

        options = await ScriptOptions.from_parameters(parameters)

        assert options.git_auto_pull is False
        assert options.npm_install is False
        assert options.npm_run_build is True
